"""HTTP API - FastAPI app with role-gated routers"""
