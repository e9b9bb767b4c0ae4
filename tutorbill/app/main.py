# tutorbill backend entrypoint: invoice totals and payment entry computations over HTTP.

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tutorbill.app.api import invoices
from tutorbill.app.api import payments
from tutorbill.app.api import refunds
from tutorbill.app.core.logging_config import configure_logging
from tutorbill.app.core.settings import get_settings

settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(title=settings.app_name, version=settings.api_version)

origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(invoices.router)
app.include_router(payments.router)
app.include_router(refunds.router)


@app.get("/")
def read_root():
    return {"app": "tutorbill backend", "status": "ok"}


@app.get("/health")
def health_check():
    return {"status": "ok"}
