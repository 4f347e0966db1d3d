import os
import secrets
from typing import Optional

from fastapi import APIRouter, FastAPI
from fastapi.responses import HTMLResponse
import structlog

from . import models
from .page import render_join_page

DEMO_MIN_VALUE = int(os.environ.get("DEMO_MIN_VALUE", "1000"))
DEMO_MAX_VALUE = int(os.environ.get("DEMO_MAX_VALUE", "1499"))

log = structlog.wrap_logger(
    structlog.PrintLogger(),
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
)


class JoinState:
    """The secret game id and counters for the lifetime of the server."""

    def __init__(self, min_value: int, max_value: int, secret: Optional[int] = None) -> None:
        self.min_value = min_value
        self.max_value = max_value
        self.secret = secret if secret is not None else min_value + secrets.randbelow(max_value - min_value + 1)
        self.attempts = 0
        self.accepted = 0
        self.last_game_id: Optional[str] = None

    def check(self, game_id: str) -> bool:
        self.attempts += 1
        self.last_game_id = game_id
        ok = game_id.strip() == str(self.secret)
        if ok:
            self.accepted += 1
        log.info("join attempt", game_id=game_id, accepted=ok, attempts=self.attempts)
        return ok


STATE = JoinState(DEMO_MIN_VALUE, DEMO_MAX_VALUE)

# Create the FastAPI app
app = FastAPI(title="pin-tickler Demo Join Page")

# Create the router for API endpoints
router = APIRouter()


@app.get("/", response_class=HTMLResponse)
def join_page(gameId: Optional[str] = None):
    """ Join page. A native form submit lands here with ?gameId=... """
    if not gameId:
        return render_join_page()
    accepted = STATE.check(gameId)
    return render_join_page(f"Joined {gameId}" if accepted else f"No game {gameId}")


@router.get("/range", response_model=models.RangeResponse)
def keyspace_range():
    """ Range the secret game id was drawn from. """
    return models.RangeResponse(min_value=STATE.min_value, max_value=STATE.max_value)


@router.post("/join", response_model=models.JoinResponse)
def join(req: models.JoinRequest):
    """ Check a game id against the secret. """
    return models.JoinResponse(accepted=STATE.check(req.game_id))


@router.get("/stats", response_model=models.StatsResponse)
def stats():
    return models.StatsResponse(
        attempts=STATE.attempts,
        accepted=STATE.accepted,
        last_game_id=STATE.last_game_id,
    )


# Include the router in the app (after all routes are defined)
app.include_router(router, prefix="/api")
