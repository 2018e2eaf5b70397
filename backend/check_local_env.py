"""Validate the local Iris backend environment.

Usage:
  set -a
  source backend/.env
  set +a
  python3 backend/check_local_env.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path


PROVIDERS = {
    "cloudflare": "CLOUDFLARE_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
}
ENV_PATH = Path(__file__).resolve().parent / ".env"


def load_env_file(path: Path) -> None:
    if not path.exists():
        return
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if value.startswith(("'", '"')) and value.endswith(("'", '"')) and len(value) >= 2:
            value = value[1:-1]
        os.environ.setdefault(key, value)


def check_fraction(name: str, errors: list[str]) -> None:
    raw = os.getenv(name, "").strip()
    if not raw:
        return
    try:
        value = float(raw)
    except ValueError:
        errors.append(f"{name} is not a number: {raw}")
        return
    if not 0 < value <= 1:
        errors.append(f"{name} must be in (0, 1], got {raw}")


def collect_problems() -> tuple[list[str], list[str]]:
    errors: list[str] = []
    warnings: list[str] = []

    provider = os.getenv("IRIS_PROVIDER", "cloudflare").strip().lower() or "cloudflare"
    if provider not in PROVIDERS:
        errors.append(f"IRIS_PROVIDER must be one of {', '.join(sorted(PROVIDERS))}, got {provider}")
        return errors, warnings

    key_name = PROVIDERS[provider]
    if not (os.getenv(f"IRIS_{key_name}", "").strip() or os.getenv(key_name, "").strip()):
        errors.append(f"{key_name} is missing for provider {provider}")

    if provider == "cloudflare" and not (
        os.getenv("IRIS_CLOUDFLARE_ACCOUNT_ID", "").strip() or os.getenv("CLOUDFLARE_ACCOUNT_ID", "").strip()
    ):
        errors.append("IRIS_CLOUDFLARE_ACCOUNT_ID is missing for provider cloudflare")

    check_fraction("IRIS_IMAGE_SCALE", errors)
    check_fraction("IRIS_IMAGE_QUALITY", errors)

    instructions = os.getenv("IRIS_SYSTEM_INSTRUCTIONS")
    if instructions is not None and "{language}" not in instructions:
        errors.append("IRIS_SYSTEM_INSTRUCTIONS must contain the {language} placeholder")

    if not os.getenv("IRIS_LOCALE", "").strip():
        warnings.append("IRIS_LOCALE is not set; descriptions default to English")

    return errors, warnings


def supported_python() -> bool:
    return (3, 11) <= sys.version_info[:2] < (3, 14)


def main() -> int:
    load_env_file(ENV_PATH)

    py_version = sys.version_info
    if not supported_python():
        print(
            "Unsupported Python version: "
            f"{py_version.major}.{py_version.minor}. "
            "Use Python 3.11, 3.12, or 3.13 for this repo."
        )
        return 1

    errors, warnings = collect_problems()

    print(f"Loaded env file: {ENV_PATH}")
    if errors:
        print("\nErrors:")
        for item in errors:
            print(f"  - {item}")
    if warnings:
        print("\nWarnings:")
        for item in warnings:
            print(f"  - {item}")

    if errors:
        print("\nLocal environment is not ready.")
        return 1

    print("\nLocal environment looks ready.")
    print("Next:")
    print("  1. cd backend")
    print("  2. uvicorn iris_app.main:app --reload")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
