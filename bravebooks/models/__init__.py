# Import every model so Base.metadata sees all tables (alembic + create_all).
from bravebooks.models.user import User  # noqa: F401
from bravebooks.models.password_reset import PasswordReset  # noqa: F401
from bravebooks.models.book import Book, Purchase  # noqa: F401
from bravebooks.models.book_access_token import BookAccessToken  # noqa: F401
from bravebooks.models.progress import ReadingProgress  # noqa: F401
from bravebooks.models.bookmark import Bookmark  # noqa: F401
from bravebooks.models.reading_session import ReadingSession, PageEngagement  # noqa: F401
from bravebooks.models.user_analytics import UserAnalytics  # noqa: F401
