"""
Pydantic models for the Love Nest couples journal.

Request bodies and wire projections. Stored documents use snake_case keys;
the wire format is camelCase. Each stored entity has exactly one ``from_doc``
projection.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MoodTag(str, Enum):
    HAPPY = "happy"
    SAD = "sad"
    CALM = "calm"
    STRESSED = "stressed"
    EXCITED = "excited"
    TIRED = "tired"
    ANXIOUS = "anxious"
    GRATEFUL = "grateful"


MOOD_EMOJI = {
    MoodTag.HAPPY: "😊",
    MoodTag.SAD: "😢",
    MoodTag.CALM: "😌",
    MoodTag.STRESSED: "😣",
    MoodTag.EXCITED: "🤩",
    MoodTag.TIRED: "😴",
    MoodTag.ANXIOUS: "😰",
    MoodTag.GRATEFUL: "🙏",
}


class ReactionType(str, Enum):
    LIKE = "like"
    LOVE = "love"
    HAHA = "haha"
    WOW = "wow"
    SAD = "sad"
    ANGRY = "angry"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class MatchStatus(str, Enum):
    WAITING = "WAITING"
    NONE = "NONE"
    ONE_SIDED = "ONE_SIDED"
    MATCH = "MATCH"
    MISMATCH = "MISMATCH"


class ReviewView(str, Enum):
    ME = "me"
    PARTNER = "partner"
    COUPLE = "couple"


class QuoteSource(str, Enum):
    PERSISTED = "persisted"
    FALLBACK = "fallback"


# =====================================================================================
# REQUEST BODIES
# =====================================================================================

class RegisterRequest(CamelModel):
    name: str
    email: EmailStr
    password: str


class LoginRequest(CamelModel):
    email: EmailStr
    password: str


class ProfileUpdate(CamelModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    gender: Optional[Gender] = None
    image: Optional[str] = None


class StartDateRequest(CamelModel):
    start_date: Optional[str] = None


class JoinCoupleRequest(CamelModel):
    invite_code: Optional[str] = None


class MoodRequest(CamelModel):
    mood: Optional[MoodTag] = None
    intensity: Optional[int] = None
    note: Optional[str] = None
    event_id: Optional[str] = None


class PostImage(CamelModel):
    url: str
    public_id: Optional[str] = None


class PostRequest(CamelModel):
    content: Optional[str] = None
    images: List[PostImage] = Field(default_factory=list)
    post_id: Optional[str] = None


class StarRequest(CamelModel):
    starred: Optional[bool] = None


class CommentRequest(CamelModel):
    text: Optional[str] = None
    parent_comment_id: Optional[str] = None


class ReactionRequest(CamelModel):
    type: Optional[ReactionType] = None


class MessageRequest(CamelModel):
    text: Optional[str] = None
    image_url: Optional[str] = None
    audio_url: Optional[str] = None


# =====================================================================================
# PROJECTIONS
# =====================================================================================

class UserOut(CamelModel):
    id: str
    name: str
    email: str
    image: Optional[str] = None
    gender: Optional[Gender] = None

    @classmethod
    def from_doc(cls, doc: dict) -> "UserOut":
        return cls(
            id=doc["id"],
            name=doc.get("name") or "",
            email=doc["email"],
            image=doc.get("image"),
            gender=doc.get("gender"),
        )


class AuthorOut(CamelModel):
    name: str
    email: str
    image: Optional[str] = None

    @classmethod
    def from_doc(cls, doc: Optional[dict]) -> Optional["AuthorOut"]:
        if not doc:
            return None
        return cls(name=doc.get("name") or "", email=doc["email"], image=doc.get("image"))


class AuthResponse(CamelModel):
    token: str
    user: UserOut


class CoupleOut(CamelModel):
    id: str
    invite_code: str
    start_date: Optional[str] = None
    member_ids: List[str]

    @classmethod
    def from_doc(cls, doc: dict) -> "CoupleOut":
        return cls(
            id=doc["id"],
            invite_code=doc["invite_code"],
            start_date=doc.get("start_date"),
            member_ids=list(doc.get("member_ids", [])),
        )


class CoupleDetail(CoupleOut):
    creator_id: Optional[str] = None
    members: List[UserOut] = Field(default_factory=list)
    days_together: Optional[int] = None


class MoodEventOut(CamelModel):
    id: str
    user_id: str
    date: str
    mood: MoodTag
    intensity: int
    note: str = ""
    created_at: datetime

    @classmethod
    def from_doc(cls, doc: dict) -> "MoodEventOut":
        return cls(
            id=doc["id"],
            user_id=doc["user_id"],
            date=doc["date"],
            mood=doc["mood"],
            intensity=doc["intensity"],
            note=doc.get("note") or "",
            created_at=doc["created_at"],
        )


class MoodSnapshot(CamelModel):
    mood: MoodTag
    intensity: int

    @classmethod
    def from_doc(cls, doc: Optional[dict]) -> Optional["MoodSnapshot"]:
        if not doc:
            return None
        return cls(mood=doc["mood"], intensity=doc["intensity"])


class DominantMoodOut(CamelModel):
    id: str
    mood: MoodTag
    intensity: int
    note: str = ""

    @classmethod
    def from_doc(cls, doc: Optional[dict]) -> Optional["DominantMoodOut"]:
        if not doc:
            return None
        return cls(id=doc["id"], mood=doc["mood"], intensity=doc["intensity"], note=doc.get("note") or "")


class MoodPair(CamelModel):
    me: Optional[MoodSnapshot] = None
    partner: Optional[MoodSnapshot] = None


class MoodMatchOut(CamelModel):
    status: MatchStatus
    message: str
    moods: MoodPair = Field(default_factory=MoodPair)


class ReviewDay(CamelModel):
    date: str
    mood: Optional[MoodTag] = None
    intensity: Optional[int] = None


class CoupleReviewDay(CamelModel):
    date: str
    me: Optional[MoodSnapshot] = None
    partner: Optional[MoodSnapshot] = None


class PostOut(CamelModel):
    id: str
    author_id: str
    author: Optional[AuthorOut] = None
    date: str
    content: str
    images: List[PostImage] = Field(default_factory=list)
    starred: bool = False
    created_at: datetime

    @classmethod
    def from_doc(cls, doc: dict, author: Optional[dict] = None) -> "PostOut":
        return cls(
            id=doc["id"],
            author_id=doc["author_id"],
            author=AuthorOut.from_doc(author),
            date=doc["date"],
            content=doc["content"],
            images=[PostImage(**image) for image in doc.get("images") or []],
            starred=bool(doc.get("starred", False)),
            created_at=doc["created_at"],
        )


class CommentOut(CamelModel):
    id: str
    post_id: str
    user_id: str
    user: Optional[AuthorOut] = None
    text: str
    parent_comment_id: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_doc(cls, doc: dict, user: Optional[dict] = None) -> "CommentOut":
        return cls(
            id=doc["id"],
            post_id=doc["post_id"],
            user_id=doc["user_id"],
            user=AuthorOut.from_doc(user),
            text=doc["text"],
            parent_comment_id=doc.get("parent_comment_id"),
            created_at=doc["created_at"],
        )


class ReactionOut(CamelModel):
    id: str
    user_id: str
    user: Optional[AuthorOut] = None
    type: ReactionType

    @classmethod
    def from_doc(cls, doc: dict, user: Optional[dict] = None) -> "ReactionOut":
        return cls(id=doc["id"], user_id=doc["user_id"], user=AuthorOut.from_doc(user), type=doc["type"])


class MessageOut(CamelModel):
    id: str
    sender_id: str
    sender: Optional[AuthorOut] = None
    text: Optional[str] = None
    image_url: Optional[str] = None
    audio_url: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_doc(cls, doc: dict, sender: Optional[dict] = None) -> "MessageOut":
        return cls(
            id=doc["id"],
            sender_id=doc["sender_id"],
            sender=AuthorOut.from_doc(sender),
            text=doc.get("text"),
            image_url=doc.get("image_url"),
            audio_url=doc.get("audio_url"),
            created_at=doc["created_at"],
        )


class QuoteOut(CamelModel):
    date: str
    text: str
    source: QuoteSource


class UploadOut(CamelModel):
    url: str
    public_id: Optional[str] = None
