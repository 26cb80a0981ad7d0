"""Core domain: models, datapoints, namespaces and encoders."""
