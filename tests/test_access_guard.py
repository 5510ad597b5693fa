from datetime import datetime, timedelta, timezone

from clinic.core.results import AuthFailure
from clinic.core.security import TokenAuthority, UserRole
from clinic.services.access_guard import AccessGuard
from clinic.services.credential_store import CredentialStore
from tests.conftest import make_admin, make_doctor, make_patient

T0 = datetime(2030, 1, 1, tzinfo=timezone.utc)


def guard_at(db, moment=T0):
    authority = TokenAuthority("guard-secret", clock=lambda: moment)
    return AccessGuard(authority, CredentialStore(db)), authority


class TestAuthorize:

    def test_patient_token_authorizes_patient(self, db):
        patient = make_patient(db)
        guard, authority = guard_at(db)
        token = authority.issue(patient.email).token

        result = guard.authorize(token, UserRole.PATIENT)
        assert result.ok
        assert result.value.principal_id == patient.id
        assert result.value.role == UserRole.PATIENT

    def test_admin_resolves_by_username(self, db):
        admin = make_admin(db, username="root")
        guard, authority = guard_at(db)

        result = guard.authorize(authority.issue("root").token, "admin")
        assert result.ok
        assert result.value.principal_id == admin.id

    def test_doctor_token_cannot_act_as_patient(self, db):
        """A cryptographically valid token still fails for another role."""
        doctor = make_doctor(db)
        guard, authority = guard_at(db)
        token = authority.issue(doctor.email).token

        assert guard.authorize(token, UserRole.DOCTOR).ok
        result = guard.authorize(token, UserRole.PATIENT)
        assert not result.ok
        assert result.reason == AuthFailure.ROLE_MISMATCH

    def test_shared_identifier_resolves_within_requested_role(self, db):
        """The same email in two stores maps to each store's own principal."""
        doctor = make_doctor(db, email="shared@clinic.test")
        patient = make_patient(db, email="shared@clinic.test")
        guard, authority = guard_at(db)
        token = authority.issue("shared@clinic.test").token

        assert guard.authorize(token, UserRole.DOCTOR).value.principal_id == doctor.id
        assert guard.authorize(token, UserRole.PATIENT).value.principal_id == patient.id

    def test_unknown_role_is_mismatch(self, db):
        patient = make_patient(db)
        guard, authority = guard_at(db)

        result = guard.authorize(authority.issue(patient.email).token, "superuser")
        assert result.reason == AuthFailure.ROLE_MISMATCH

    def test_deleted_principal_fails(self, db):
        """Lookups are not cached: a dangling token stops working."""
        patient = make_patient(db)
        guard, authority = guard_at(db)
        token = authority.issue(patient.email).token
        assert guard.authorize(token, UserRole.PATIENT).ok

        db.delete(patient)
        db.commit()

        result = guard.authorize(token, UserRole.PATIENT)
        assert result.reason == AuthFailure.ROLE_MISMATCH

    def test_expired_token_is_invalid(self, db):
        patient = make_patient(db)
        _, authority = guard_at(db)
        token = authority.issue(patient.email).token
        later_guard, _ = guard_at(db, T0 + timedelta(days=7))

        result = later_guard.authorize(token, UserRole.PATIENT)
        assert result.reason == AuthFailure.INVALID_TOKEN
        assert result.detail == "expired"

    def test_garbage_token_never_reaches_lookup(self, db):
        guard, _ = guard_at(db)

        result = guard.authorize("garbage", UserRole.ADMIN)
        assert result.reason == AuthFailure.INVALID_TOKEN
        assert result.detail == "malformed"
