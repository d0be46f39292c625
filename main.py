import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Union

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError

import database
from database import (
    create_entity,
    delete_entity,
    ensure_indexes,
    find_entities,
    find_entity,
    get_documents,
    update_entity,
)
from errors import (
    NotFound,
    OrphanedChild,
    StorageUnavailable,
    TrackerError,
    ValidationFailed,
)
from relationships import (
    add_friend,
    add_reaction,
    add_thought,
    remove_friend,
    remove_reaction,
    remove_thought,
)
from schemas import (
    CreateReaction,
    CreateThought,
    CreateUser,
    UpdateThought,
    UpdateUser,
    User,
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.db is not None:
        ensure_indexes()
    else:
        logger.warning("DATABASE_URL / DATABASE_NAME not set; API will answer 503")
    yield


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Error handlers

STATUS_BY_ERROR = {
    ValidationFailed: 400,
    NotFound: 404,
    OrphanedChild: 404,
    StorageUnavailable: 503,
}


def error_status(exc: TrackerError) -> int:
    for cls, status in STATUS_BY_ERROR.items():
        if isinstance(exc, cls):
            return status
    return 500


def error_body(exc: TrackerError) -> dict:
    body = {"message": exc.message}
    if isinstance(exc, ValidationFailed) and exc.errors:
        body["errors"] = jsonable_encoder(exc.errors)
    return body


@app.exception_handler(TrackerError)
async def tracker_error_handler(request: Request, exc: TrackerError):
    return JSONResponse(status_code=error_status(exc), content=error_body(exc))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"message": "Request validation failed", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    return JSONResponse(status_code=400, content={"message": "Username or email is already taken"})

# Utilities


def format_date(value: datetime) -> str:
    """Oct 18th, 2026 at 3:04 pm"""
    day = value.day
    if 11 <= day % 100 <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    hour = value.hour % 12 or 12
    period = "am" if value.hour < 12 else "pm"
    return f"{value.strftime('%b')} {day}{suffix}, {value.year} at {hour}:{value.minute:02d} {period}"


def to_str_id(doc):
    if not doc:
        return doc
    d = dict(doc)
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    d.pop("__v", None)
    # Convert datetimes to isoformat
    for k, v in list(d.items()):
        if isinstance(v, datetime):
            d[k] = v.isoformat()
    return d


def serialize_thought(doc):
    d = to_str_id(doc)
    reactions = []
    for r in doc.get("reactions", []):
        r = dict(r)
        if isinstance(r.get("createdAt"), datetime):
            r["createdAt"] = format_date(r["createdAt"])
        reactions.append(r)
    d["reactions"] = reactions
    d["reactionCount"] = len(reactions)
    return d


def serialize_user(doc):
    d = to_str_id(doc)
    d["thoughts"] = [serialize_thought(t) for t in find_entities("thought", doc.get("thoughts", []))]
    d["friends"] = list(doc.get("friends", []))
    d["friendCount"] = len(d["friends"])
    return d


@app.get("/")
def read_root():
    return {"message": "Thoughts API ready"}


@app.get("/test")
def test_database():
    """Diagnostic: document counts per collection and the uniqueness indexes on users."""
    response = {
        "backend": "✅ Running",
        "database": "❌ Not configured",
        "collections": {},
        "unique_indexes": [],
    }
    if database.db is None:
        return response
    try:
        for kind in database.LABELS:
            response["collections"][kind] = database.db[kind].count_documents({})
        response["unique_indexes"] = sorted(
            name for name, info in database.db["user"].index_information().items() if info.get("unique")
        )
        response["database"] = "✅ Connected & Working"
    except Exception as e:
        logger.warning("Database diagnostic failed: %s", e)
        response["database"] = f"⚠️ Connected but Error: {str(e)[:80]}"
    return response

# Users


@app.get("/api/users")
def list_users():
    docs = get_documents("user", sort=[("_id", -1)])
    return [serialize_user(d) for d in docs]


@app.get("/api/users/{user_id}")
def get_user(user_id: str):
    return serialize_user(find_entity("user", user_id))


@app.post("/api/users")
def create_user(payload: CreateUser):
    user_id = create_entity("user", User(**payload.model_dump()))
    return serialize_user(find_entity("user", user_id))


@app.put("/api/users/{user_id}")
def update_user(user_id: str, payload: UpdateUser):
    fields = payload.model_dump(exclude_none=True)
    if not fields:
        return serialize_user(find_entity("user", user_id))
    return serialize_user(update_entity("user", user_id, fields))


@app.delete("/api/users/{user_id}")
def delete_user(user_id: str):
    return serialize_user(delete_entity("user", user_id))


@app.post("/api/users/{user_id}/friends/{friend_id}")
def create_friend(user_id: str, friend_id: str):
    return serialize_user(add_friend(user_id, friend_id))


@app.delete("/api/users/{user_id}/friends/{friend_id}")
def delete_friend(user_id: str, friend_id: str):
    return serialize_user(remove_friend(user_id, friend_id))

# Thoughts


@app.get("/api/thoughts")
def list_thoughts():
    docs = get_documents("thought", sort=[("_id", -1)])
    return [serialize_thought(d) for d in docs]


@app.get("/api/thoughts/{thought_id}")
def get_thought(thought_id: str):
    return serialize_thought(find_entity("thought", thought_id))


@app.post("/api/thoughts")
def create_thoughts(payload: Union[List[CreateThought], CreateThought]):
    if not isinstance(payload, list):
        return serialize_user(add_thought(payload))

    # bulk form, sent by the offline resync dispatcher
    accepted = []
    for item in payload:
        try:
            accepted.append(serialize_user(add_thought(item)))
        except TrackerError as e:
            logger.warning("Bulk thought create stopped after %d of %d: %s", len(accepted), len(payload), e.message)
            body = error_body(e)
            body["accepted"] = len(accepted)
            return JSONResponse(status_code=error_status(e), content=body)
    return {"accepted": accepted}


@app.put("/api/thoughts/{thought_id}")
def update_thought(thought_id: str, payload: UpdateThought):
    return serialize_thought(update_entity("thought", thought_id, payload.model_dump()))


@app.delete("/api/thoughts/{user_id}/{thought_id}")
def delete_thought(user_id: str, thought_id: str):
    return serialize_user(remove_thought(user_id, thought_id))

# Reactions


@app.post("/api/thoughts/{thought_id}/reactions")
def create_reaction(thought_id: str, payload: CreateReaction):
    return serialize_thought(add_reaction(thought_id, payload))


@app.delete("/api/thoughts/{thought_id}/reactions/{reaction_id}")
def delete_reaction(thought_id: str, reaction_id: str):
    return serialize_thought(remove_reaction(thought_id, reaction_id))


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
