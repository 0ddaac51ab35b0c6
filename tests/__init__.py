"""
zenload Test Suite

Unit tests for load spec parsing, aliases, caching, fetching, materialization
and the resolver chain. Network and git access are replaced with fakes and
httpx mock transports.
"""
