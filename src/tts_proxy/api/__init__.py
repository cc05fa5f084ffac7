"""
HTTP layer.

    - routes.py: /health, /api/rate-limit-status, /api/speech, /metrics
    - admission.py: AdmissionGate and RateLimit-* headers
    - dependencies.py: FastAPI dependency providers
    - schemas.py: Request/response models
"""
