# identity_api/adapters/inbound/api/v1/router.py

from fastapi import APIRouter
from identity_api.adapters.inbound.api.v1.endpoints import client_endpoint

api_router = APIRouter()

# Include the routers of the endpoints
api_router.include_router(client_endpoint.router, prefix="/clients", tags=["Clients"])
