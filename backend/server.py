"""
Love Nest - Couples Journal Backend
FastAPI + MongoDB Implementation
"""
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, File, Query, Request, Response, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, DuplicateKeyError, PyMongoError
from starlette.middleware.cors import CORSMiddleware

import config
import content
import couples
import dates
import moods
import quotes
import review
from auth import (
    CoupleContext,
    create_access_token,
    get_current_couple,
    get_current_user,
    get_current_user_profile,
    hash_password,
    verify_password,
)
from database import MongoPool, ensure_indexes, get_database, get_pool
from errors import AppError, Conflict, InvalidInput, Unauthorized, Unavailable
from models import (
    AuthResponse,
    CommentOut,
    CommentRequest,
    CoupleOut,
    DominantMoodOut,
    JoinCoupleRequest,
    LoginRequest,
    MessageOut,
    MessageRequest,
    MoodEventOut,
    MoodRequest,
    PostOut,
    PostRequest,
    ReactionOut,
    ReactionRequest,
    RegisterRequest,
    ProfileUpdate,
    StarRequest,
    StartDateRequest,
    UploadOut,
    UserOut,
)
from supabase_client import ALLOWED_PREFIXES, MediaGateway, get_media_gateway

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    pool = getattr(app.state, "mongo", None)
    if pool is None:
        pool = MongoPool()
        app.state.mongo = pool
    try:
        await ensure_indexes(await pool.acquire())
    except PyMongoError as e:
        logger.error(f"Could not create indexes at startup: {e}")
    yield
    # Shutdown
    pool.close()


app = FastAPI(title="Love Nest - Couples Journal", version="1.0.0", lifespan=lifespan)

# Create a router with the /api prefix
api_router = APIRouter(prefix="/api")


# =====================================================================================
# ERROR HANDLING
# =====================================================================================

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ())[1:]) or "body"
        message = f"{field}: {first.get('msg', 'invalid value')}"
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"detail": message})


@app.exception_handler(PyMongoError)
async def store_error_handler(request: Request, exc: PyMongoError):
    if isinstance(exc, ConnectionFailure):
        logger.error(f"MongoDB connection failure, resetting pool: {exc}")
        get_pool(request).reset()
    else:
        logger.error(f"MongoDB error: {exc}")
    return JSONResponse(status_code=Unavailable.status_code, content={"detail": Unavailable.default_message})


def _set_session_cookie(response: Response, token: str):
    response.set_cookie(
        config.SESSION_COOKIE,
        token,
        max_age=config.SESSION_DAYS * 24 * 3600,
        httponly=True,
        samesite="lax",
    )


# =====================================================================================
# AUTHENTICATION
# =====================================================================================

@api_router.post("/auth/register", response_model=AuthResponse)
async def register(
    user_data: RegisterRequest,
    response: Response,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    """Register with email and password"""
    name = user_data.name.strip()
    if not name:
        raise InvalidInput("Name required")
    if len(user_data.password) < MIN_PASSWORD_LENGTH:
        raise InvalidInput(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    email = user_data.email.lower()
    if await db.users.find_one({"email": email}):
        raise Conflict("Email already registered")

    user = {
        "id": str(uuid.uuid4()),
        "name": name,
        "email": email,
        "password": hash_password(user_data.password),
        "created_at": dates.utcnow(),
    }
    try:
        await db.users.insert_one(user)
    except DuplicateKeyError:
        raise Conflict("Email already registered")

    token = create_access_token(user["id"])
    _set_session_cookie(response, token)
    return AuthResponse(token=token, user=UserOut.from_doc(user))


@api_router.post("/auth/login", response_model=AuthResponse)
async def login(
    login_data: LoginRequest,
    response: Response,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    user = await db.users.find_one({"email": login_data.email.lower()})
    if not user or not user.get("password") or not verify_password(login_data.password, user["password"]):
        raise Unauthorized("Invalid credentials")

    token = create_access_token(user["id"])
    _set_session_cookie(response, token)
    return AuthResponse(token=token, user=UserOut.from_doc(user))


@api_router.post("/auth/logout")
async def logout(response: Response):
    response.delete_cookie(config.SESSION_COOKIE)
    return {"success": True}


# =====================================================================================
# PROFILE MANAGEMENT
# =====================================================================================

@api_router.get("/user/profile")
async def get_profile(user: dict = Depends(get_current_user_profile)):
    return {"user": UserOut.from_doc(user)}


@api_router.patch("/user/profile")
async def update_profile(
    changes: ProfileUpdate,
    user: dict = Depends(get_current_user_profile),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    update = {}
    if changes.email and changes.email.lower() != user["email"]:
        email = changes.email.lower()
        existing = await db.users.find_one({"email": email})
        if existing and existing["id"] != user["id"]:
            raise Conflict("This email is already used by another account")
        update["email"] = email
    if changes.name and changes.name.strip():
        update["name"] = changes.name.strip()
    if changes.gender:
        update["gender"] = changes.gender.value
    if changes.image is not None:
        update["image"] = changes.image

    if update:
        try:
            await db.users.update_one({"id": user["id"]}, {"$set": update})
        except DuplicateKeyError:
            raise Conflict("This email is already used by another account")
        user.update(update)
    return {"user": UserOut.from_doc(user)}


# =====================================================================================
# COUPLE PAIRING
# =====================================================================================

@api_router.post("/couple/create")
async def create_couple(
    request: StartDateRequest,
    user: dict = Depends(get_current_user_profile),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    couple = await couples.create_couple(db, user["id"], request.start_date)
    return {"couple": CoupleOut.from_doc(couple)}


@api_router.post("/couple/join")
async def join_couple(
    request: JoinCoupleRequest,
    user: dict = Depends(get_current_user_profile),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    couple = await couples.join_couple(db, user["id"], request.invite_code)
    return {"couple": CoupleOut.from_doc(couple)}


@api_router.post("/couple/leave")
async def leave_couple(
    user: dict = Depends(get_current_user_profile),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    await couples.leave_couple(db, user["id"])
    return {"success": True}


@api_router.patch("/couple/update-start-date")
async def update_start_date(
    request: StartDateRequest,
    user: dict = Depends(get_current_user_profile),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    couple = await couples.update_start_date(db, user["id"], request.start_date)
    projected = CoupleOut.from_doc(couple)
    return {
        "couple": {"id": projected.id, "inviteCode": projected.invite_code, "startDate": projected.start_date},
        "message": "Start date updated",
    }


@api_router.get("/couple/me")
async def get_my_couple(
    user: dict = Depends(get_current_user_profile),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    couple = await couples.get_couple_for_user(db, user["id"])
    if not couple:
        return {"couple": None}
    return {"couple": await couples.describe_couple(db, couple)}


# =====================================================================================
# MOODS
# =====================================================================================

@api_router.post("/moods")
async def record_mood(
    request: MoodRequest,
    ctx: CoupleContext = Depends(get_current_couple),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    if request.mood is None or request.intensity is None:
        raise InvalidInput("Mood and intensity required")
    event = await moods.record_mood(
        db,
        ctx.user_id,
        ctx.couple_id,
        request.mood,
        request.intensity,
        request.note,
        request.event_id,
    )
    return {"event": MoodEventOut.from_doc(event)}


@api_router.get("/moods/today")
async def get_today_moods(
    ctx: CoupleContext = Depends(get_current_couple),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    mine, partners = await moods.get_moods_for_day(db, ctx.user_id, ctx.partner_id, dates.today_str())
    return {
        "moods": {
            "me": DominantMoodOut.from_doc(moods.pick_dominant(mine)),
            "partner": DominantMoodOut.from_doc(moods.pick_dominant(partners)),
        },
        "events": {
            "me": [MoodEventOut.from_doc(e) for e in mine],
            "partner": [MoodEventOut.from_doc(e) for e in partners],
        },
    }


@api_router.get("/mood-match/today")
async def get_mood_match(
    ctx: CoupleContext = Depends(get_current_couple),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await moods.get_today_mood_match(db, ctx.user_id, ctx.couple)


# =====================================================================================
# YEARLY REVIEW
# =====================================================================================

@api_router.get("/review")
async def get_review(
    year: Optional[int] = None,
    view: Optional[str] = None,
    ctx: CoupleContext = Depends(get_current_couple),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await review.build_year_series(
        db, ctx.couple, ctx.user_id, review.parse_year(year), review.parse_view(view)
    )


# =====================================================================================
# DAILY QUOTE & DAY VIEW
# =====================================================================================

@api_router.get("/quote/today")
async def get_today_quote(
    ctx: CoupleContext = Depends(get_current_couple),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await quotes.get_today_quote(db, ctx.couple_id)


@api_router.get("/day")
async def get_day(
    date: Optional[str] = None,
    ctx: CoupleContext = Depends(get_current_couple),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    """Everything the couple logged on one day"""
    day = dates.parse_day(date).isoformat()
    quote = await quotes.get_quote_for_date(db, ctx.couple_id, day)
    mine, partners = await moods.get_moods_for_day(db, ctx.user_id, ctx.partner_id, day)
    posts = await content.project_posts(db, await content.posts_for_day(db, ctx.couple_id, day))

    return {
        "date": day,
        "quote": {"text": quote.text, "source": quote.source},
        "moods": {
            "me": DominantMoodOut.from_doc(moods.pick_dominant(mine)),
            "partner": DominantMoodOut.from_doc(moods.pick_dominant(partners)),
        },
        "moodEvents": {
            "me": [MoodEventOut.from_doc(e) for e in mine],
            "partner": [MoodEventOut.from_doc(e) for e in partners],
        },
        "posts": {
            "me": [p for p in posts if p.author_id == ctx.user_id],
            "partner": [p for p in posts if p.author_id != ctx.user_id],
        },
        "starred": [p for p in posts if p.starred],
    }


# =====================================================================================
# POSTS
# =====================================================================================

@api_router.get("/posts")
async def list_posts(
    range_: str = Query(default="week", alias="range"),
    author_filter: str = Query(default="both", alias="filter"),
    ctx: CoupleContext = Depends(get_current_couple),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    posts = await content.list_posts(db, ctx.user_id, ctx.couple, range_, author_filter)
    return {"posts": await content.project_posts(db, posts)}


@api_router.post("/posts")
async def save_post(
    request: PostRequest,
    ctx: CoupleContext = Depends(get_current_couple),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    post = await content.save_post(db, ctx.user_id, ctx.couple_id, request.content, request.images, request.post_id)
    return {"post": PostOut.from_doc(post, ctx.user)}


@api_router.get("/posts/starred")
async def list_starred_posts(
    ctx: CoupleContext = Depends(get_current_couple),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    posts = await content.list_starred_posts(db, ctx.couple_id)
    return {"posts": await content.project_posts(db, posts)}


@api_router.get("/posts/{post_id}")
async def get_post(
    post_id: str,
    ctx: CoupleContext = Depends(get_current_couple),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    post = await content.get_post(db, ctx.couple_id, post_id)
    projected = await content.project_posts(db, [post])
    return {"post": projected[0]}


@api_router.delete("/posts/{post_id}")
async def delete_post(
    post_id: str,
    ctx: CoupleContext = Depends(get_current_couple),
    db: AsyncIOMotorDatabase = Depends(get_database),
    media: MediaGateway = Depends(get_media_gateway),
):
    post = await content.delete_post(db, ctx.user_id, ctx.couple_id, post_id)
    stored = [image["public_id"] for image in post.get("images") or [] if image.get("public_id")]
    try:
        media.remove(stored)
    except Exception as e:
        logger.warning(f"Could not remove media for post {post_id}: {e}")
    return {"message": "Post deleted successfully"}


@api_router.patch("/posts/{post_id}/star")
async def star_post(
    post_id: str,
    request: StarRequest,
    ctx: CoupleContext = Depends(get_current_couple),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    post = await content.set_star(db, ctx.couple_id, post_id, request.starred)
    return {"post": {"id": post["id"], "starred": post["starred"]}}


# =====================================================================================
# COMMENTS & REACTIONS
# =====================================================================================

@api_router.get("/posts/{post_id}/comments")
async def list_comments(
    post_id: str,
    ctx: CoupleContext = Depends(get_current_couple),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    await content.get_post(db, ctx.couple_id, post_id)
    return {"comments": await content.list_comments(db, post_id)}


@api_router.post("/posts/{post_id}/comments")
async def add_comment(
    post_id: str,
    request: CommentRequest,
    ctx: CoupleContext = Depends(get_current_couple),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    await content.get_post(db, ctx.couple_id, post_id)
    comment = await content.add_comment(db, ctx.user_id, post_id, request.text, request.parent_comment_id)
    return {"comment": CommentOut.from_doc(comment, ctx.user)}


@api_router.get("/posts/{post_id}/reactions")
async def list_reactions(
    post_id: str,
    ctx: CoupleContext = Depends(get_current_couple),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    await content.get_post(db, ctx.couple_id, post_id)
    return await content.list_reactions(db, ctx.user_id, post_id)


@api_router.post("/posts/{post_id}/reactions")
async def react(
    post_id: str,
    request: ReactionRequest,
    ctx: CoupleContext = Depends(get_current_couple),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    await content.get_post(db, ctx.couple_id, post_id)
    reaction = await content.react(db, ctx.user_id, post_id, request.type)
    return {"reaction": ReactionOut.from_doc(reaction, ctx.user)}


@api_router.delete("/posts/{post_id}/reactions")
async def remove_reaction(
    post_id: str,
    ctx: CoupleContext = Depends(get_current_couple),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    await content.get_post(db, ctx.couple_id, post_id)
    await content.remove_reaction(db, ctx.user_id, post_id)
    return {"success": True}


# =====================================================================================
# CHAT
# =====================================================================================

@api_router.get("/messages")
async def list_messages(
    cursor: Optional[str] = None,
    limit: int = Query(default=50),
    ctx: CoupleContext = Depends(get_current_couple),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await content.list_messages(db, ctx.couple_id, cursor, limit)


@api_router.post("/messages")
async def send_message(
    request: MessageRequest,
    ctx: CoupleContext = Depends(get_current_couple),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    message = await content.send_message(
        db, ctx.user_id, ctx.couple_id, request.text, request.image_url, request.audio_url
    )
    return {"message": MessageOut.from_doc(message, ctx.user)}


# =====================================================================================
# MEDIA UPLOAD
# =====================================================================================

@api_router.post("/upload", response_model=UploadOut)
async def upload_media(
    file: UploadFile = File(...),
    user_id: str = Depends(get_current_user),
    media: MediaGateway = Depends(get_media_gateway),
):
    """Upload an image or audio file to storage"""
    content_type = file.content_type or ""
    if not content_type.startswith(ALLOWED_PREFIXES):
        raise InvalidInput("File must be an image or audio file")

    data = await file.read()
    if not data:
        raise InvalidInput("No file provided")
    if len(data) > config.MAX_UPLOAD_BYTES:
        raise InvalidInput("File too large")

    try:
        stored = media.upload(user_id, file.filename, data, content_type)
    except Exception as e:
        logger.error(f"Upload error: {e}")
        raise Unavailable("Upload failed")
    return UploadOut(url=stored["url"], public_id=stored["public_id"])


# =====================================================================================
# HEALTH CHECK
# =====================================================================================

@api_router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "Love Nest is running"}


@api_router.get("/health/db")
async def health_db(request: Request):
    pool = get_pool(request)
    ok = pool.health_check is None or await pool.health_check(pool.client)
    if not ok:
        pool.reset()
        return JSONResponse(status_code=503, content={"ok": False, "db": "disconnected"})
    return {"ok": True, "db": "connected"}


# Include the router in the main app
app.include_router(api_router)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
