from app.models.user import User, UserRole, Base, ADMIN_ROLE
from app.models.deal import Deal, PriceHistory
from app.models.project import Project
from app.models.tracking import ClickTracking, ShareTracking
from app.models.category_rule import CategoryRule
from app.models.comment import Comment

__all__ = [
    'User', 'UserRole', 'Base', 'ADMIN_ROLE', 'Deal', 'PriceHistory', 'Project',
    'ClickTracking', 'ShareTracking', 'CategoryRule', 'Comment',
]
