from __future__ import annotations

from enum import Enum


class UserRole(str, Enum):
    user = "user"
    admin = "admin"
    super_admin = "super_admin"


class ReviewStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class ProposalStatus(str, Enum):
    pending = "pending"
    published = "published"
    rejected = "rejected"


class ModerationAction(str, Enum):
    approve = "approve"
    reject = "reject"
    publish = "publish"


class ReportReason(str, Enum):
    spam = "spam"
    hate = "hate"
    false = "false"
    irrelevant = "irrelevant"
    other = "other"


class ReportAction(str, Enum):
    keep = "keep"
    delete = "delete"


class ReactionValue(int, Enum):
    like = 1
    dislike = -1
