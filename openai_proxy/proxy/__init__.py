"""Request/response translation pipeline.

Credential acquisition, request normalization, backend dispatch and reply
translation (single-shot and streaming).
"""
