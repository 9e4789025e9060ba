from enum import Enum


class ModerationStatusEnum(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class RecipientStatusEnum(str, Enum):
    pending = "pending"
    sent = "sent"
    submitted = "submitted"


class MediaKindEnum(str, Enum):
    photo = "photo"
    video = "video"
