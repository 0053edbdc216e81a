from fastapi import FastAPI

from storefront.mockapi.api import routes_auth, routes_cart, routes_orders
from storefront.version import VERSION

app = FastAPI(title="Mock Retailer API", version=VERSION)

@app.get("/health")
def health():
    return {"status": "ok"}

@app.get("/v1/_info")
def info():
    return {"service": "mock-retailer-api", "version": VERSION}

app.include_router(routes_auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(routes_cart.router, prefix="/api/retailer", tags=["cart"])
app.include_router(routes_orders.router, prefix="/api/retailer", tags=["orders"])
