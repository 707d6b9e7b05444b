"""Main FastAPI application."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cashflow.config import settings
from cashflow.forecast import routes as forecast_routes
from cashflow.middleware.errors import setup_error_handlers
from cashflow.reconciliation import routes as reconciliation_routes
from cashflow.reports import routes as report_routes
from cashflow.scenarios import routes as scenario_routes
from cashflow.seed import routes as seed_routes

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create FastAPI app
app = FastAPI(
    title="Cashflow Engine API",
    description="Construction cashflow forecasting, what-if scenarios and variance reconciliation",
    version="0.1.0",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_error_handlers(app)

# Include routers
app.include_router(forecast_routes.router, prefix=f"{settings.API_V1_PREFIX}/forecast", tags=["Forecast"])
app.include_router(scenario_routes.router, prefix=f"{settings.API_V1_PREFIX}/scenarios", tags=["Scenarios"])
app.include_router(
    reconciliation_routes.router, prefix=f"{settings.API_V1_PREFIX}/reconciliation", tags=["Reconciliation"]
)
app.include_router(report_routes.router, prefix=f"{settings.API_V1_PREFIX}/reports", tags=["Reports"])
app.include_router(seed_routes.router, prefix=f"{settings.API_V1_PREFIX}/seed", tags=["Seed"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Cashflow Engine API",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "cashflow.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
