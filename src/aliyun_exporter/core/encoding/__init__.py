"""Encoders for exposing metric samples."""
