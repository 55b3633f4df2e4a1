"""
Upstream Module

This module talks to the Nexon Open API.

Components:
- client.py - Authenticated GET with retries and error normalization
- identity.py - Character name to ocid resolution
- fetcher.py - Optional-section fetch policy
"""
