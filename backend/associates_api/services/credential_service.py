"""
Associates Backend — Credential Service
========================================

What:  Reads and writes rows of the `credentials` table.
Who:   Called by AuthGate (lookup, rotation, provisioning) and by the lifespan
       handler (bootstrap admin).
How:   Stateless; every method receives the request's AsyncSession. Driver
       errors are wrapped in DatabaseError so they surface as a generic 500,
       never as an auth failure.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from associates_api.exceptions import ConflictError, DatabaseError
from associates_api.models.credential import ROLE_ADMIN, Credential

logger = logging.getLogger(__name__)


class CredentialService:

    async def get_by_identifier(
        self, db: AsyncSession, identifier: str
    ) -> Optional[Credential]:
        """Exact-match lookup. Returns None when no row exists."""
        try:
            result = await db.execute(
                select(Credential).where(Credential.identifier == identifier)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error looking up credential: %s", str(e))
            raise DatabaseError(context={"operation": "credential_lookup"})

    async def count(self, db: AsyncSession) -> int:
        try:
            result = await db.execute(select(func.count(Credential.id)))
            return result.scalar() or 0
        except SQLAlchemyError as e:
            logger.error("Database error counting credentials: %s", str(e))
            raise DatabaseError(context={"operation": "credential_count"})

    async def create(
        self,
        db: AsyncSession,
        identifier: str,
        secret_hash: str,
        role: str,
    ) -> Credential:
        """
        Insert a credential.

        Raises:
            ConflictError: identifier already taken (unique constraint)
            DatabaseError: any other database failure
        """
        now = datetime.now(timezone.utc)
        credential = Credential(
            identifier=identifier,
            secret_hash=secret_hash,
            role=role,
            created_at=now,
            updated_at=now,
        )
        db.add(credential)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise ConflictError(
                message="A credential with this identifier already exists",
                context={"identifier": identifier},
            )
        except SQLAlchemyError as e:
            logger.error("Database error creating credential: %s", str(e))
            raise DatabaseError(context={"operation": "credential_create"})
        logger.info("Credential provisioned: %s (role=%s)", identifier, role)
        return credential

    async def update_secret_hash(
        self, db: AsyncSession, credential: Credential, secret_hash: str
    ) -> None:
        credential.secret_hash = secret_hash
        credential.updated_at = datetime.now(timezone.utc)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error rotating secret: %s", str(e))
            raise DatabaseError(context={"operation": "credential_rotate"})
        logger.info("Secret rotated for %s", credential.identifier)

    async def bootstrap_admin(
        self, db: AsyncSession, identifier: str, secret_hash: str
    ) -> bool:
        """
        Create the first admin credential if the table is empty.

        Returns True when a credential was created. Running it on every start
        is safe: once any credential exists it does nothing.
        """
        if await self.count(db) > 0:
            return False
        await self.create(db, identifier=identifier, secret_hash=secret_hash, role=ROLE_ADMIN)
        return True


credential_service = CredentialService()
