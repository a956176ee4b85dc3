"""
Shared utilities for the HTTP Cat caching proxy.

This package holds the cross-cutting building blocks the service is built on:

- config: Service configuration via pydantic-settings
- logging: Structured logging with trace correlation
- metrics: Prometheus metrics helpers
- tracing: Opt-in OpenTelemetry tracing
- errors: Canonical error types
- base_service: FastAPI application scaffolding

Do not import from service_* packages into shared/.
"""
