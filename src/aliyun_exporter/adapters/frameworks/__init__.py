"""Framework adapters exposing the exporter over HTTP."""
