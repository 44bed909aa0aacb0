"""
clubdesk API server entry point
"""
import sys

from loguru import logger


# Logging
logger.remove()
logger.add(
    sys.stderr,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    level="INFO"
)
logger.add(
    "logs/clubdesk_{time:YYYY-MM-DD}.log",
    rotation="1 day",
    retention="30 days",
    level="DEBUG"
)


def main():
    """Main"""
    import argparse

    import uvicorn

    parser = argparse.ArgumentParser(description="clubdesk attendance & payment API")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Reload on code changes (development)"
    )
    args = parser.parse_args()

    logger.info(f"Starting clubdesk on {args.host}:{args.port}")
    uvicorn.run(
        "clubdesk.server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info"
    )


if __name__ == "__main__":
    main()
