#!/usr/bin/env python3
"""Check the .env file and the SMARTSCHED_* settings the schedule API needs."""

import os
import sys
from pathlib import Path

TEMPLATE = """# Optimization engine
SMARTSCHED_ENGINE_BASE_URL=http://127.0.0.1:5003
# SMARTSCHED_ENGINE_TIMEOUT_SECONDS=30
# SMARTSCHED_ENGINE_SUPPORTS_PROTECTED_DATES=false

# Schedule cache and calendar
# SMARTSCHED_CACHE_TTL_SECONDS=300
# SMARTSCHED_SCHEDULE_TIMEZONE=Europe/London

# Supabase (verifies user access tokens)
# Get these from: https://supabase.com/dashboard → Your Project → Settings → API
SMARTSCHED_SUPABASE_URL=https://your-project-id.supabase.co
SMARTSCHED_SUPABASE_KEY=your-anon-or-service-key-here
# SMARTSCHED_AUTH_ENABLED=true

# API
SMARTSCHED_API_PREFIX=/api
# Comma-separated or JSON array: http://localhost:8081,http://localhost:19006
# SMARTSCHED_FRONTEND_ALLOWED_ORIGINS=
"""

SECRET_KEYS = ("SMARTSCHED_SUPABASE_KEY",)


def _mask(line: str) -> str:
    name, sep, value = line.partition("=")
    value = value.strip()
    if sep and name.strip() in SECRET_KEYS and len(value) > 20:
        return f"{name}={value[:20]}...{value[-10:]}"
    return line


def main() -> int:
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    print("=" * 60)
    print("Smart Schedule Environment Checker")
    print("=" * 60)
    print()

    if not env_file.exists():
        env_file.write_text(TEMPLATE, encoding="utf-8")
        print(f"❌ .env file NOT found, created a template at: {env_file}")
        print("⚠️  Edit it with your engine URL and Supabase credentials, then run this again.")
        return 1

    print(f"✅ Found .env file at: {env_file}")
    print("-" * 60)
    for line in env_file.read_text(encoding="utf-8").splitlines():
        print(_mask(line))
    print("-" * 60)
    print()

    for name in ("SMARTSCHED_ENGINE_BASE_URL", "SMARTSCHED_SUPABASE_URL", "SMARTSCHED_SUPABASE_KEY"):
        if os.getenv(name):
            print(f"✅ {name} is set in the process environment (overrides .env)")

    sys.path.insert(0, str(project_root / "src"))
    try:
        from smart_schedule.config import settings
    except Exception as e:
        print(f"❌ Error loading config: {e}")
        print("Check SMARTSCHED_* values for typos and invalid numbers.")
        return 1

    print()
    print(f"Engine:    {settings.engine_base_url}{settings.engine_optimize_path}")
    print(f"Timeout:   {settings.engine_timeout_seconds}s (connect {settings.engine_connect_timeout_seconds}s)")
    print(f"Cache TTL: {settings.cache_ttl_seconds}s")
    print(f"Timezone:  {settings.schedule_timezone}")
    print()

    problems = []
    if not settings.engine_base_url:
        problems.append("SMARTSCHED_ENGINE_BASE_URL is empty")
    if settings.auth_enabled and not (settings.supabase_url and settings.supabase_key):
        problems.append("Authentication is enabled but Supabase URL/key are missing")

    print("=" * 60)
    if problems:
        for problem in problems:
            print(f"❌ {problem}")
        print("=" * 60)
        return 1
    print("✅ SUCCESS: configuration looks complete")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
