from fastapi import APIRouter

router = APIRouter()

ENDPOINTS = [
    {
        "method": "GET",
        "usage": "/fetch",
        "description": "Fetch a video stream from a URL",
        "query": {
            "url": "The URL of the video or image.",
            "ref": "The referrer URL",
        },
    },
    {
        "method": "GET",
        "usage": "/fetch/segment",
        "description": "Fetch a video segment from a URL",
        "query": {
            "url": "The URL of the video segment.",
        },
    },
    {
        "method": "GET",
        "usage": "/health",
        "description": "Check the health status of the server",
    },
]


@router.get("/")
async def index():
    return {"message": "Relay is ready", "endpoints": ENDPOINTS}


@router.get("/health")
async def health():
    return {"status": "OK"}
