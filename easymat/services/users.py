from __future__ import annotations

import logging

from sqlalchemy import select

from .base import BaseService
from ..auth.core import hash_password
from ..constants import UserRole
from ..errors import UserExistsError
from ..models import User
from ..schemas import RegisterInput, UserRead

logger = logging.getLogger("easymat.users")


class UserService(BaseService):

    def user_exists(self, email: str) -> bool:
        return self.session.execute(
            select(User.id).where(User.email == email.lower())
        ).first() is not None

    def create_user(self, data: RegisterInput) -> UserRead:
        """Register a passenger account. Elevated roles are granted out of band."""
        if self.user_exists(data.email):
            raise UserExistsError()

        user = User(
            email=data.email,
            name=data.name,
            phone=data.phone,
            password_hash=hash_password(data.password),
            role=UserRole.USER.value,
            is_active=True,
            created_at=self.clock(),
        )
        self.session.add(user)
        self.session.flush()
        logger.info("Registered user %s", user.id)
        return UserRead.model_validate(user)
