from dovi.models.users import User
from dovi.models.companies import Category, Company, CompanyProposal
from dovi.models.reviews import Review, ReviewReaction, ReviewReport
from dovi.models.moderation import ModerationLog

__all__ = [
    "User",
    "Category",
    "Company",
    "CompanyProposal",
    "Review",
    "ReviewReaction",
    "ReviewReport",
    "ModerationLog",
]
