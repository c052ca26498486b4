"""
Background jobs for the Havo weather API.

cache_refresh runs inside the API process on a 30 minute interval and can
also be run once as a standalone script:

Usage:
    python -m havo.api.jobs.cache_refresh
"""
