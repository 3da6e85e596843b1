#!/usr/bin/env python3
"""Run the schedule API under uvicorn, honouring the PORT environment variable."""

import os
import subprocess
import sys
from pathlib import Path

project_root = Path(__file__).parent
src_path = project_root / "src"

port = os.environ.get("PORT", "8000")
try:
    port_int = int(port)
except ValueError:
    print(f"Warning: Invalid PORT value '{port}', using default 8000", file=sys.stderr)
    port_int = 8000

pythonpath = os.environ.get("PYTHONPATH", "")
os.environ["PYTHONPATH"] = f"{src_path}{os.pathsep}{pythonpath}" if pythonpath else str(src_path)
sys.path.insert(0, str(src_path))

# Single worker: the schedule cache and in-flight optimizations live in process memory.
cmd = [
    sys.executable,
    "-m",
    "uvicorn",
    "smart_schedule.main:app",
    "--host",
    "0.0.0.0",
    "--port",
    str(port_int),
    "--proxy-headers",
    "--forwarded-allow-ips", "*",
]

print(f"Starting schedule API on port {port_int}...", file=sys.stderr)
print(f"PYTHONPATH={os.environ['PYTHONPATH']}", file=sys.stderr)

# Fail fast on configuration errors (bad SMARTSCHED_* values, missing engine URL).
try:
    from smart_schedule.config import settings
    import smart_schedule.main  # noqa: F401
except Exception as e:
    print(f"❌ Failed to import smart_schedule.main ({type(e).__name__}): {e}", file=sys.stderr)
    import traceback
    traceback.print_exc(file=sys.stderr)
    sys.exit(1)

print(f"✅ Optimization engine: {settings.engine_base_url}", file=sys.stderr)
print(f"✅ Cache TTL: {settings.cache_ttl_seconds}s, timezone: {settings.schedule_timezone}", file=sys.stderr)
if not settings.auth_enabled:
    print("⚠️  Authentication is disabled (SMARTSCHED_AUTH_ENABLED=false)", file=sys.stderr)

print("🚀 Starting uvicorn server...", file=sys.stderr)
try:
    result = subprocess.call(cmd)
    if result != 0:
        print(f"❌ Uvicorn exited with code {result}", file=sys.stderr)
    sys.exit(result)
except KeyboardInterrupt:
    print("⚠️ Server interrupted by user", file=sys.stderr)
    sys.exit(0)
