"""
Member invitations.

An invitation pre-creates an inactive member profile; accepting it activates
the profile and closes the matching waitlist entry. The lookup and acceptance
paths are public (the invitee has no account yet) and run unscoped.
"""
import uuid
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from clubhouse import audit
from clubhouse.audit import AuditAction
from clubhouse.db import models, schemas
from clubhouse.db.models import as_aware, now_utc
from clubhouse.db.repositories import profiles as profile_repo
from clubhouse.errors import NotFoundError, ServiceError, ValidationFailed
from clubhouse.services.base import BaseService
from clubhouse.utils.role_permissions import ROLE_MEMBER


class InvitationService(BaseService):
    logger_name = "clubhouse.invitations"

    def find_by_id(self, invitation_id: uuid.UUID) -> models.Invitation:
        self.require_user_id()
        with self.transaction() as trx:
            return self._find_by_id(trx, invitation_id)

    def find_many(
        self,
        status: Optional[str] = None,
        email: Optional[str] = None,
        user_id: Optional[uuid.UUID] = None,
        invitation_type: Optional[str] = None,
    ) -> List[models.Invitation]:
        self.require_user_id()
        self.logger.info("invitation_find_many: status=%s type=%s", status, invitation_type)
        with self.transaction() as trx:
            query = trx.query(models.Invitation)
            if status:
                query = query.filter(models.Invitation.status == status)
            if email:
                query = query.filter(models.Invitation.email == email.strip().lower())
            if user_id:
                query = query.filter(models.Invitation.user_id == user_id)
            if invitation_type:
                query = query.filter(models.Invitation.invitation_type == invitation_type)
            return query.order_by(models.Invitation.created_at.desc()).all()

    def create(self, data: schemas.InvitationCreate) -> uuid.UUID:
        self.require_user_id()
        self.logger.info("invitation_create: email=%s type=%s", data.email, data.invitation_type)
        with self.transaction() as trx:
            return self._create(trx, data)

    def update_status(self, invitation_id: uuid.UUID, status: str) -> models.Invitation:
        self.require_user_id()
        self.logger.info("invitation_update_status: invitation_id=%s status=%s", invitation_id, status)
        with self.transaction() as trx:
            invitation = self._update_status(trx, invitation_id, status)
            audit.log(
                trx,
                action=AuditAction.INVITATION_STATUS_CHANGE,
                target_type="invitation",
                target_id=invitation.id,
                actor_user_id=self.user_id,
                metadata={"status": status},
            )
            return invitation

    def get_invitation_info(self, invitation_id: uuid.UUID) -> Dict[str, Any]:
        self.logger.info("invitation_info: invitation_id=%s", invitation_id)
        expired = False
        with self.unscoped_transaction() as trx:
            invitation = self._pending(trx, invitation_id)
            if as_aware(invitation.expires_at) < now_utc():
                invitation.status = "expired"
                expired = True
            else:
                info = self._info(trx, invitation)
        # The expiry is persisted before the caller sees the error
        if expired:
            raise ValidationFailed("Invitation has expired.")
        return info

    def validate(self, invitation_id: uuid.UUID) -> bool:
        try:
            return self.get_invitation_info(invitation_id)["status"] == "pending"
        except ServiceError as exc:
            self.logger.warning("invitation_validate_failed: invitation_id=%s error=%s", invitation_id, exc.message)
            return False

    def validate_credentials(self, invitation_id: uuid.UUID, email: str, date_of_birth: date) -> bool:
        self.logger.info("invitation_validate_credentials: invitation_id=%s", invitation_id)
        with self.unscoped_transaction() as trx:
            return self._credentials_match(trx, invitation_id, email, date_of_birth)

    def accept(self, invitation_id: uuid.UUID, data: schemas.InvitationAccept) -> Dict[str, Any]:
        """Public acceptance: credentials are checked before anything is written."""
        info = self.get_invitation_info(invitation_id)
        with self.unscoped_transaction() as trx:
            if not self._credentials_match(trx, invitation_id, data.email, data.date_of_birth):
                raise ValidationFailed("Invalid invitation credentials")
            self.process_invitation_acceptance(trx, invitation_id, data.next_of_kin_name, data.next_of_kin_phone)
        return info

    def process_invitation_acceptance(
        self, trx: Session, invitation_id: uuid.UUID, next_of_kin_name: str, next_of_kin_phone: str
    ) -> models.Invitation:
        self.logger.info("invitation_accept: invitation_id=%s", invitation_id)
        invitation = self._update_status(trx, invitation_id, "accepted")
        invitation.accepted_at = now_utc()
        profile = trx.get(models.UserProfile, invitation.user_id) if invitation.user_id else None
        if profile is None:
            profile = profile_repo.get_profile_by_email(trx, invitation.email)
        if profile is None:
            raise NotFoundError("User profile not found")
        profile.is_active = True
        profile.next_of_kin_name = next_of_kin_name
        profile.next_of_kin_phone = next_of_kin_phone
        trx.query(models.WaitlistEntry).filter(models.WaitlistEntry.email == invitation.email).update(
            {"status": "joined"}, synchronize_session="fetch"
        )
        trx.flush()
        audit.log(
            trx,
            action=AuditAction.INVITATION_ACCEPT,
            target_type="invitation",
            target_id=invitation.id,
            actor_user_id=profile.id,
        )
        return invitation

    def _find_by_id(self, trx: Session, invitation_id: uuid.UUID) -> models.Invitation:
        invitation = trx.get(models.Invitation, invitation_id)
        if invitation is None:
            raise NotFoundError("Invitation not found")
        return invitation

    def _pending(self, trx: Session, invitation_id: uuid.UUID) -> models.Invitation:
        invitation = trx.get(models.Invitation, invitation_id)
        if invitation is None or invitation.status != "pending":
            raise NotFoundError("Invitation not found")
        return invitation

    def _info(self, trx: Session, invitation: models.Invitation) -> Dict[str, Any]:
        profile = trx.get(models.UserProfile, invitation.user_id) if invitation.user_id else None
        return {
            "invitation_id": invitation.id,
            "email": invitation.email,
            "first_name": profile.first_name if profile else None,
            "last_name": profile.last_name if profile else None,
            "phone_number": profile.phone_number if profile else None,
            "date_of_birth": profile.date_of_birth if profile else None,
            "invitation_type": invitation.invitation_type,
            "status": invitation.status,
            "expires_at": invitation.expires_at,
        }

    def _credentials_match(self, trx: Session, invitation_id: uuid.UUID, email: str, date_of_birth: date) -> bool:
        invitation = trx.get(models.Invitation, invitation_id)
        if invitation is None or invitation.status != "pending":
            return False
        if invitation.email != (email or "").strip().lower():
            return False
        profile = trx.get(models.UserProfile, invitation.user_id) if invitation.user_id else None
        return profile is not None and profile.date_of_birth == date_of_birth

    def _create(self, trx: Session, data: schemas.InvitationCreate) -> uuid.UUID:
        profile = trx.get(models.UserProfile, data.user_id) if data.user_id else None
        if profile is None:
            profile = profile_repo.get_profile_by_email(trx, data.email)
        if profile is None:
            profile = profile_repo.create_profile(
                trx,
                email=data.email,
                roles=[ROLE_MEMBER],
                first_name=data.first_name,
                last_name=data.last_name,
                is_active=False,
            )
        else:
            profile_repo.add_roles(trx, profile, [ROLE_MEMBER])
            profile.first_name = data.first_name
            profile.last_name = data.last_name
        profile.date_of_birth = data.date_of_birth
        profile.phone_number = data.phone_number

        waitlist = trx.get(models.WaitlistEntry, data.waitlist_id) if data.waitlist_id else None
        if waitlist is None:
            waitlist = trx.query(models.WaitlistEntry).filter(models.WaitlistEntry.email == data.email).first()
        if waitlist is not None:
            waitlist.status = "invited"
            profile.waitlist_id = waitlist.id

        trx.query(models.Invitation).filter(
            models.Invitation.email == data.email,
            models.Invitation.status == "pending",
        ).update({"status": "revoked"}, synchronize_session="fetch")

        invitation = models.Invitation(
            email=data.email,
            user_id=profile.id,
            waitlist_id=waitlist.id if waitlist is not None else None,
            invitation_type=data.invitation_type,
            status="pending",
            metadata_json=data.metadata,
            created_by=self.user_id,
        )
        if data.expires_at is not None:
            invitation.expires_at = data.expires_at
        trx.add(invitation)
        trx.flush()
        audit.log(
            trx,
            action=AuditAction.INVITATION_CREATE,
            target_type="invitation",
            target_id=invitation.id,
            actor_user_id=self.user_id,
            metadata={"email": data.email, "invitation_type": data.invitation_type},
        )
        return invitation.id

    def _update_status(self, trx: Session, invitation_id: uuid.UUID, status: str) -> models.Invitation:
        invitation = self._find_by_id(trx, invitation_id)
        invitation.status = status
        trx.flush()
        return invitation
