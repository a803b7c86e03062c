from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import CORS_ORIGINS
from .logging_config import configure_logging
from .routers import chart_of_accounts, health, journal_entries, reports

configure_logging()

app = FastAPI(title="Ledgerbook API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(chart_of_accounts.router)
app.include_router(journal_entries.router)
app.include_router(reports.router)


@app.get("/")
def root():
    return {"status": "ok"}
