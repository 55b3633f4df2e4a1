#!/usr/bin/env python3
"""
Development runner for the MapleStory Dashboard character aggregator.
"""
import uvicorn
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from shared.config import get_settings

settings = get_settings()

if __name__ == "__main__":
    print("Starting MapleStory Dashboard - Character Aggregator")
    print(f"Host: {settings.host}:{settings.port}")
    print(f"Debug: {settings.debug}")
    print(f"Upstream: {settings.api_base_url}")
    print(f"API key configured: {bool(settings.nexon_open_api_key)}")
    print(f"Response cache TTL: {settings.response_cache_ttl}s")
    print("-" * 50)
    
    uvicorn.run(
        "aggregator.service:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="info" if settings.debug else "warning"
    )
