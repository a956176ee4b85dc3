"""Static page served for the root path."""

USAGE_PAGE = """<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <title>HTTP Cat caching proxy</title>
  </head>
  <body>
    <h1>&#128049; Caching proxy for HTTP Cat</h1>
    <p>Usage: <code>GET /{HTTP_CODE}</code></p>
    <p>Examples:</p>
    <ul>
      <li><a href="/200">GET /200</a> - OK</li>
      <li><a href="/404">GET /404</a> - Not Found</li>
      <li><a href="/500">GET /500</a> - Internal Server Error</li>
    </ul>
    <p>Supported methods: GET, PUT, DELETE</p>
  </body>
</html>
"""
