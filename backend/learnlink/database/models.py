"""Every mapped model, imported so ``Base.metadata`` knows all tables.

Alembic, ``init_database`` and the test suite import ``Base`` from here.
"""

from learnlink.activities.models import UserActivity
from learnlink.database.base import Base
from learnlink.follows.models import Follow
from learnlink.learning_plans.models import LearningPlan, Resource, Topic
from learnlink.notifications.models import Notification
from learnlink.posts.models import Comment, Like, Post
from learnlink.progress.models import ResourceProgress, TopicProgress, UserProgress
from learnlink.users.models import User


__all__ = [
    "Base",
    "Comment",
    "Follow",
    "LearningPlan",
    "Like",
    "Notification",
    "Post",
    "Resource",
    "ResourceProgress",
    "Topic",
    "TopicProgress",
    "User",
    "UserActivity",
    "UserProgress",
]
