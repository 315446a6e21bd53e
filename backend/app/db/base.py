from backend.app.db.base_class import Base

# Import models to register metadata for Base.metadata.create_all in tests
from backend.app.models.user import User  # noqa: F401
from backend.app.models.category import Category  # noqa: F401
from backend.app.models.branch import Branch  # noqa: F401
from backend.app.models.batch import Batch  # noqa: F401
from backend.app.models.student import Student  # noqa: F401
from backend.app.models.payment import Payment  # noqa: F401
