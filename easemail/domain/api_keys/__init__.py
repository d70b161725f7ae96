"""API keys domain - per-organization provider keys, encrypted at rest"""
