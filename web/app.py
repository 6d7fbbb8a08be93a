import json
import os
import sys

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from geostats.service import GeoStatsService

app = FastAPI(title="GeoGuessr Stats")
service = GeoStatsService()

DOWNLOAD_ACTION = "downloadCountries"
SAVE_ACTION = "saveGame"


def _envelope(payload: dict) -> JSONResponse:
    # Errors are reported in the body; the status stays 200 like the client expects.
    return JSONResponse(content=payload)


@app.get("/")
async def root(action: str = "", sheet: str = "", user: str = "") -> Response:
    if action == DOWNLOAD_ACTION:
        result = service.export(sheet, user_id=user or None)
        if not result["success"]:
            return _envelope(result)
        return Response(content=result["csv"], media_type="text/csv")
    return _envelope(service.health())


@app.post("/")
async def save(request: Request) -> JSONResponse:
    try:
        payload = json.loads(await request.body())
    except (ValueError, UnicodeDecodeError) as e:
        return _envelope({"success": False, "error": f"Invalid JSON body: {e}"})
    if not isinstance(payload, dict):
        return _envelope({"success": False, "error": "Request body must be a JSON object"})

    if payload.get("action") == SAVE_ACTION:
        return _envelope(service.submit(payload.get("userId"), payload.get("gameData")))
    return _envelope({"success": False, "error": "Unknown action"})


@app.get("/api/statistics/{user_id}")
async def statistics(user_id: str, detailed: bool = True) -> JSONResponse:
    return _envelope(service.statistics(user_id, detailed=detailed))
