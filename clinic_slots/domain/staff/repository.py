"""Staff directory - looks up the user who owns generated slots"""

from sqlalchemy import select

from ...database import BaseRepository, with_db_timeout
from ...errors import NoResponsibleStaffError
from ...models import User

RESPONSIBLE_ROLES = ("admin", "doctor")


class StaffRepository(BaseRepository):
    """Repository for staff lookups"""

    @with_db_timeout
    async def find_responsible_staff(self) -> User:
        """First active admin or doctor; raises NoResponsibleStaffError if there is none"""
        async with self.session_factory() as session:
            staff = await session.scalar(
                select(User)
                .where(User.role.in_(RESPONSIBLE_ROLES), User.is_active.is_(True))
                .order_by(User.id)
                .limit(1)
            )

        if staff is None:
            raise NoResponsibleStaffError("No doctor/admin user found")
        return staff
