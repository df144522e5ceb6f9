# Import models here so Alembic can discover metadata.
from gymhub.models.user import User  # noqa: F401
from gymhub.models.organization import Organization  # noqa: F401
from gymhub.models.member import Member  # noqa: F401
from gymhub.models.invitation import Invitation  # noqa: F401
from gymhub.models.workout import Workout  # noqa: F401
