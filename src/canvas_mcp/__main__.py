"""Allow running as ``python -m canvas_mcp``."""

from canvas_mcp.main import app

if __name__ == "__main__":
    app()
