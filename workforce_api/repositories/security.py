from __future__ import annotations

from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import delete, func, select, update

from workforce_api.db.models.security import Permission, Role, RolePermission, User, UserRole
from .base import BaseRepository


class SecurityRepository(BaseRepository):
    """Users, roles and permission codes of the current business."""

    # Users
    async def get_user_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(func.lower(User.email) == email.lower())
        return await self.scalar_one_or_none(stmt)

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        stmt = select(User).where(User.id == user_id)
        return await self.scalar_one_or_none(stmt)

    async def count_users(self) -> int:
        stmt = select(func.count(User.id))
        result = await self.execute(stmt)
        return int(result.scalar_one())

    async def list_users(self, limit: int = 100, offset: int = 0) -> List[User]:
        stmt = select(User).order_by(User.created_at.desc()).offset(offset).limit(limit)
        result = await self.scalars(stmt)
        return list(result)

    async def create_user(
        self,
        *,
        email: str,
        full_name: Optional[str],
        hashed_password: str,
        is_active: bool = True,
        is_superadmin: bool = False,
    ) -> User:
        user = User(
            email=email.lower(),
            full_name=full_name,
            hashed_password=hashed_password,
            is_active=is_active,
            is_superadmin=is_superadmin,
        )
        await self.add(user)
        await self.commit()
        # reload so roles are eagerly populated
        return (await self.get_user_by_email(email))  # type: ignore

    async def update_user(
        self,
        user_id: UUID,
        *,
        email: Optional[str] = None,
        full_name: Optional[str] = None,
        hashed_password: Optional[str] = None,
        is_active: Optional[bool] = None,
        is_superadmin: Optional[bool] = None,
    ) -> Optional[User]:
        values = {}
        if email is not None:
            values["email"] = email.lower()
        if full_name is not None:
            values["full_name"] = full_name
        if hashed_password is not None:
            values["hashed_password"] = hashed_password
        if is_active is not None:
            values["is_active"] = is_active
        if is_superadmin is not None:
            values["is_superadmin"] = is_superadmin

        if not values:
            return await self.get_user_by_id(user_id)

        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        await self.execute(stmt)
        await self.commit()
        return await self.get_user_by_id(user_id)

    async def delete_user(self, user_id: UUID) -> None:
        stmt = delete(User).where(User.id == user_id)
        await self.execute(stmt)
        await self.commit()

    async def list_roles_for_user(self, user_id: UUID) -> List[Role]:
        stmt = (
            select(Role)
            .join(UserRole, Role.id == UserRole.role_id)
            .where(UserRole.user_id == user_id)
            .order_by(Role.name)
        )
        result = await self.scalars(stmt)
        return list(result)

    # Roles
    async def list_roles(self, limit: int = 100, offset: int = 0) -> List[Role]:
        stmt = select(Role).order_by(Role.name).offset(offset).limit(limit)
        res = await self.scalars(stmt)
        return list(res)

    async def get_role_by_id(self, role_id: UUID, refresh: bool = False) -> Optional[Role]:
        stmt = select(Role).where(Role.id == role_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        return await self.scalar_one_or_none(stmt)

    async def get_role_by_name(self, name: str) -> Optional[Role]:
        stmt = select(Role).where(Role.name == name)
        return await self.scalar_one_or_none(stmt)

    async def create_role(self, name: str, description: Optional[str] = None) -> Role:
        role = Role(name=name, description=description)
        await self.add(role)
        await self.commit()
        return (await self.get_role_by_name(name))  # type: ignore

    async def update_role(
        self, role_id: UUID, *, name: Optional[str] = None, description: Optional[str] = None
    ) -> Optional[Role]:
        values = {k: v for k, v in {"name": name, "description": description}.items() if v is not None}
        if values:
            await self.execute(update(Role).where(Role.id == role_id).values(**values))
            await self.commit()
        return await self.get_role_by_id(role_id)

    async def delete_role(self, role_id: UUID) -> None:
        stmt = delete(Role).where(Role.id == role_id)
        await self.execute(stmt)
        await self.commit()

    async def ensure_role(self, name: str, description: Optional[str] = None) -> Role:
        role = await self.get_role_by_name(name)
        if role:
            return role
        return await self.create_role(name, description)

    # Permissions
    async def ensure_permission(self, code: str, description: Optional[str] = None) -> Permission:
        stmt = select(Permission).where(Permission.code == code)
        perm = await self.scalar_one_or_none(stmt)
        if perm:
            return perm
        perm = Permission(code=code, description=description or code)
        await self.add(perm)
        await self.commit()
        return (await self.scalar_one_or_none(stmt))  # type: ignore

    async def grant_permissions(self, role: Role, codes: Iterable[str]) -> None:
        """Attach permission codes to a role, creating missing codes."""
        existing = {p.code for p in role.permissions}
        for code in codes:
            if code in existing:
                continue
            perm = await self.ensure_permission(code)
            await self.add_permission_to_role(role.id, perm.id)

    # Associations
    async def assign_role_to_user(self, user_id: UUID, role_id: UUID) -> None:
        exists = await self.scalar_one_or_none(
            select(UserRole).where(UserRole.user_id == user_id, UserRole.role_id == role_id)
        )
        if exists:
            return
        await self.add(UserRole(user_id=user_id, role_id=role_id))
        await self.commit()

    async def remove_role_from_user(self, user_id: UUID, role_id: UUID) -> None:
        stmt = delete(UserRole).where(UserRole.user_id == user_id, UserRole.role_id == role_id)
        await self.execute(stmt)
        await self.commit()

    async def add_permission_to_role(self, role_id: UUID, permission_id: UUID) -> None:
        assoc = RolePermission(role_id=role_id, permission_id=permission_id)
        await self.add(assoc)
        await self.commit()
