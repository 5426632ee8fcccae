"""
API Routes
Progetto: Koruku (Gestionale Agenzia Web)

Modulo per l'aggregazione dei router versionati.
"""

from koruku.api.v1 import api_v1_router

# Esportazione router
__all__ = ["api_v1_router"]
