import uvicorn
from flowgraph.config import settings

if __name__ == "__main__":
    # Start the API server
    print(f"Starting FlowGraph API on {settings.API_HOST}:{settings.API_PORT} (engine at {settings.BACKEND_BASE_URL})...")
    uvicorn.run(
        "flowgraph.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.API_RELOAD
    )
