"""
Metrics JSON API Server

Serves the process's instruments and runtime figures as a JSON document for
monitoring agents to scrape.

Environment Variables:
    METRICS_SHOW_RUNTIME: Include the runtime section in documents (default: true)
    METRICS_LOG_DIR: Directory for the rotating log file (default: ./logs)
    HOST: Server host address (default: 0.0.0.0)
    PORT: Server port (default: 8081)
    DEBUG: Enable debug mode with auto-reload (default: false)

CLI Usage:
    python main.py

    # Leave out runtime figures
    METRICS_SHOW_RUNTIME=false python main.py

    # Then scrape
    curl 'http://localhost:8081/api/v1/metrics?pretty=true'
"""

import uvicorn

from metrics_json.core.config import settings

if __name__ == "__main__":
    # Get configuration from settings
    port = settings.PORT
    host = settings.HOST

    print(f"Starting {settings.PROJECT_NAME} on {host}:{port}")
    print(f"Runtime metrics: {'enabled' if settings.METRICS_SHOW_RUNTIME else 'disabled'}")

    # If reload is enabled, restrict watch scope to the package only.
    reload_enabled = bool(settings.DEBUG)
    reload_dirs = None
    if reload_enabled:
        from pathlib import Path

        repo_root = Path(__file__).resolve().parent
        reload_dirs = [str(repo_root / "metrics_json")]

    uvicorn.run(
        "metrics_json.app:app",
        host=host,
        port=port,
        reload=reload_enabled,
        reload_dirs=reload_dirs,
    )
