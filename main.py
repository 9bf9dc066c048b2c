"""Entry point for the proxy service.

This thin wrapper exposes the FastAPI `app` from api/main.py
as `app` at the repository root so that a start command like
`uvicorn main:app` works regardless of the working directory.
Running this file directly starts the local development server
on the port the UI expects (http://localhost:8000).
"""

from api.main import app  # re-export for uvicorn

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
