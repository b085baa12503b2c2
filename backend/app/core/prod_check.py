"""
Startup validation for APP_ENV=prod.
When a check fails a RuntimeError is raised and the server does not start.
"""
from pathlib import Path

from app.core.config import settings

# values considered unsafe defaults in production
INSECURE_DEFAULTS = {
    "DEFAULT_ADMIN_PASSWORD": "change_me_admin_password",
}

def validate_production_config() -> None:
    """Refuse shipped admin password, a missing token file and an empty redirect target."""
    if (getattr(settings, "app_env", "dev") or "dev").strip().lower() != "prod":
        return

    errors: list[str] = []

    if (settings.default_admin_password or "").strip() in (
        "",
        INSECURE_DEFAULTS["DEFAULT_ADMIN_PASSWORD"],
    ):
        errors.append(
            "DEFAULT_ADMIN_PASSWORD must be set and must not use the shipped default in production."
        )

    if settings.tokens_enabled:
        tokens_path = (settings.tokens_path or "").strip()
        if not tokens_path or not Path(tokens_path).expanduser().is_file():
            errors.append(
                "TOKENS_ENABLED is true but TOKENS_PATH does not point to a readable file."
            )

    if not (settings.redirect_url or "").strip():
        errors.append("REDIRECT_URL must not be empty in production.")

    if (settings.query_access or "").strip().lower() not in ("token", "admin_or_token"):
        errors.append("QUERY_ACCESS must be 'token' or 'admin_or_token'.")

    if errors:
        raise RuntimeError(
            "Invalid production configuration:\n  - " + "\n  - ".join(errors)
        )
