"""
Shared Module

Configuration and error types used by the upstream client and the aggregator.
"""
