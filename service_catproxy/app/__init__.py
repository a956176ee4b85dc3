"""
Proxy application package.

The proxy serves ``/{code}`` for 3-digit codes from a file cache, falling
back to the upstream image source on a miss and populating the cache from
the result. PUT seeds an entry and DELETE evicts one.
"""
