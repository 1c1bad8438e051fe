import argparse
import uvicorn
from autoparts.core.config import settings


def run_http(host: str = "0.0.0.0", port: int = 8000):
    """Run HTTP server"""
    print(f"🚀 Starting HTTP server on port {port}...")
    uvicorn.run(
        "autoparts.main:app",
        host=host,
        port=port,
        reload=settings.DEBUG,
        log_config=None,  # logging is configured by the app on startup
    )


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Autoparts catalog API server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()
    run_http(args.host, args.port)
