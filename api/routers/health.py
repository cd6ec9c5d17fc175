from fastapi import APIRouter
from datetime import datetime, timezone
from typing import List

from config import Settings, get_settings

router = APIRouter(prefix="/healthz", tags=["health"])


def search_configured(settings: Settings) -> bool:
    provider = (settings.search_provider or "").lower()
    if provider == "serpapi":
        return bool(settings.serpapi_key)
    if provider == "cse":
        return bool(settings.google_cse_key and settings.google_cse_cx)
    return False


def completion_configured(settings: Settings) -> bool:
    provider = (settings.completion_provider or "").lower()
    if provider == "azure":
        return bool(settings.azure_openai_key and settings.azure_openai_endpoint)
    if provider == "openai":
        return bool(settings.openai_api_key)
    return False


def configuration_problems(settings: Settings) -> List[str]:
    """Human-readable list of backends that generation runs would reject."""
    problems = []
    if not search_configured(settings):
        problems.append(f"search provider '{settings.search_provider}' is missing credentials or unknown")
    if not completion_configured(settings):
        problems.append(f"completion provider '{settings.completion_provider}' is missing credentials or unknown")
    return problems


@router.get("")
async def healthcheck():
    """Basic health check endpoint"""
    settings = get_settings()
    return {
        "status": "ok",
        "app": settings.app_name,
        "env": settings.env,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/diagnostics")
async def diagnostics():
    """Reports which external services are configured. Performs no network calls."""
    settings = get_settings()

    results = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "app": settings.app_name,
        "env": settings.env,
        "services": {}
    }

    search_ok = search_configured(settings)
    results["services"]["search"] = {
        "provider": settings.search_provider.lower(),
        "configured": search_ok,
    }

    completion = settings.completion_provider.lower()
    completion_ok = completion_configured(settings)
    results["services"]["completion"] = {
        "provider": completion,
        "configured": completion_ok,
        "model": settings.azure_openai_deployment if completion == "azure" else settings.openai_model,
    }

    results["services"]["snowflake"] = {
        "configured": bool(settings.snowflake_account and settings.snowflake_user),
        "table": settings.articles_table,
    }

    # Scraping works without credentials; generation needs both backends
    results["status"] = "healthy" if search_ok and completion_ok else "degraded"
    return results
