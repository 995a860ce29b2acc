"""Polarity REST API access: transport, endpoints, response models and client."""
