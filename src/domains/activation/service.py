# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Account activation orchestration.

The ActivationOrchestrator turns a pre-registered identity plus a freshly
created authentication principal into an active user, and places students
into their class. It serves two entry points:

- claim_pending_account(): an administrator pre-registered the person in
  ``pending_users``. The user document is created and the pending record
  deleted in one atomic batch, together with the roster update.
- register_student(): the student registered on their own. The user
  document starts as ``pending``, the external authority confirms the
  student, then the account is marked active and enrolled. A student whose
  enrollment failed can call it again to retry enrollment only.

Each entry point returns an ActivationOutcome and never raises.

Example:
    >>> orchestrator = ActivationOrchestrator(
    ...     store=store,
    ...     identity=identity_provider,
    ...     matcher=PendingRecordMatcher(store),
    ...     enrollment=EnrollmentResolver(store),
    ...     claim_strategy=NoValidation(),
    ...     registration_strategy=ExternalValidation(validator_client),
    ... )
    >>> outcome = await orchestrator.claim_pending_account(request)
    >>> outcome.to_claim_result()
"""

import logging
from typing import Any

from src.domains.activation.exceptions import (
    ActivationServiceError,
    ExternalValidationError,
    NoMatchingRecordError,
    PermissionDeniedError,
    PersistenceError,
    UnknownError,
)
from src.domains.activation.matcher import PENDING_COLLECTION, PendingRecordMatcher
from src.domains.activation.models import (
    ActivationOutcome,
    ActivationRequest,
    ActivationState,
    OutcomeStatus,
    PendingIdentity,
    RegistrationRequest,
    Role,
    UserStatus,
    normalize_matricule,
)
from src.domains.activation.validation import NoValidation, ValidationStrategy
from src.domains.auth.identity import IdentityProvider, normalize_email
from src.domains.enrollment import (
    ClassAssignmentStatus,
    ClassNotFoundError,
    EnrollmentOutcome,
    EnrollmentResolver,
)
from src.infrastructure.database import (
    DatabaseError,
    DocumentExistsError,
    DocumentNotFoundError,
    DocumentStore,
    PreconditionFailedError,
)
from src.utils.datetime import current_academic_year, utc_now_iso

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"
CLASSES_COLLECTION = "classes"
ROSTER_FIELD = "studentIds"

# Pending record fields that do not carry over to the user document
_PENDING_ONLY_FIELDS = frozenset({"id", "status", "createdAt"})


class ActivationOrchestrator:
    """Runs the activation state machine for both entry points.

    Attributes:
        store: Document store.
        identity: Identity provider, used to set the admin claim.
        matcher: Pending-record matcher.
        enrollment: Enrollment resolver.
        claim_strategy: Validation applied to students on the claim path.
        registration_strategy: Validation applied on self-registration.
        bootstrap_admin_email: Address that becomes the first admin.
    """

    def __init__(
        self,
        store: DocumentStore,
        identity: IdentityProvider,
        matcher: PendingRecordMatcher,
        enrollment: EnrollmentResolver,
        claim_strategy: ValidationStrategy | None = None,
        registration_strategy: ValidationStrategy | None = None,
        bootstrap_admin_email: str | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            store: Document store.
            identity: Identity provider.
            matcher: Pending-record matcher.
            enrollment: Enrollment resolver.
            claim_strategy: Claim path validation, none by default.
            registration_strategy: Self-registration validation, none by default.
            bootstrap_admin_email: Reserved bootstrap administrator address.
        """
        self.store = store
        self.identity = identity
        self.matcher = matcher
        self.enrollment = enrollment
        self.claim_strategy = claim_strategy or NoValidation()
        self.registration_strategy = registration_strategy or NoValidation()
        self.bootstrap_admin_email = (
            normalize_email(bootstrap_admin_email) if bootstrap_admin_email else None
        )

    # =========================================================================
    # Claim path
    # =========================================================================

    async def claim_pending_account(self, request: ActivationRequest) -> ActivationOutcome:
        """Claim a pre-registered account for a new principal.

        Args:
            request: Identity proof, email and the new principal id.

        Returns:
            ActivationOutcome. On error nothing was written.
        """
        uid = request.new_auth_user_id
        try:
            if self._is_bootstrap_email(request.email):
                return await self._bootstrap_admin(request)
            return await self._claim(request)
        except ExternalValidationError as e:
            logger.warning("Claim validation failed for principal %s: %s", uid, e.reason)
            return self._validation_failed(e.reason)
        except ActivationServiceError as e:
            logger.warning("Claim failed for principal %s: %s", uid, e.message)
            return self._error(e.message)
        except Exception as e:
            logger.exception("Unexpected error while claiming account for %s", uid)
            error = UnknownError(f"An unknown error occurred during activation: {e}")
            return self._error(error.message)

    async def _claim(self, request: ActivationRequest) -> ActivationOutcome:
        uid = request.new_auth_user_id

        try:
            pending = await self.matcher.find_pending_match(request.proof)
        except DatabaseError as e:
            raise PersistenceError(f"Could not look up pending accounts: {e}") from e
        logger.info("Pending account matched: pending=%s, principal=%s", pending.id, uid)

        is_student = pending.role == Role.STUDENT
        if is_student and self.claim_strategy.is_external:
            validation = await self.claim_strategy.validate(
                request.matricule, request.first_name, request.last_name
            )
            if not validation.ok:
                raise ExternalValidationError(validation.reason or "unknown error")

        assignment = ClassAssignmentStatus.NOT_APPLICABLE
        class_id: str | None = None
        class_name: str | None = None
        if is_student:
            assignment, class_id, class_name = await self._locate_class(pending)

        profile = self._profile_from_pending(pending, request, assignment, class_id)

        batch = self.store.batch()
        batch.create(USERS_COLLECTION, uid, profile)
        batch.delete(PENDING_COLLECTION, pending.id, must_exist=True)
        if class_id:
            batch.array_union(CLASSES_COLLECTION, class_id, ROSTER_FIELD, [uid])

        try:
            await batch.commit()
        except DocumentNotFoundError as e:
            if e.collection == PENDING_COLLECTION:
                raise NoMatchingRecordError("This account has already been activated") from e
            raise PersistenceError(f"Could not activate the account: {e}") from e
        except DocumentExistsError as e:
            raise PersistenceError("A user profile already exists for this login") from e
        except DatabaseError as e:
            raise PersistenceError(f"Could not activate the account: {e}") from e

        logger.info(
            "Account claimed: principal=%s, role=%s, class_assignment=%s",
            uid,
            pending.role.value,
            assignment.value,
        )

        if pending.role == Role.ADMIN:
            await self._grant_admin_claim(uid)

        user_profile = {**profile, "id": uid}
        if assignment in (ClassAssignmentStatus.ASSIGNED, ClassAssignmentStatus.NOT_APPLICABLE):
            return ActivationOutcome(
                state=ActivationState.DONE,
                status=OutcomeStatus.SUCCESS,
                message="Account activated successfully.",
                class_id=class_id,
                user_profile=user_profile,
            )

        return ActivationOutcome(
            state=ActivationState.ENROLLMENT_DEGRADED,
            status=OutcomeStatus.WARNING,
            message=self._degraded_message(assignment, class_name),
            user_profile=user_profile,
        )

    async def _locate_class(
        self,
        pending: PendingIdentity,
    ) -> tuple[ClassAssignmentStatus, str | None, str | None]:
        if not pending.niveau or not pending.filiere:
            logger.warning("Student %s has no niveau/filiere; class not assigned", pending.id)
            return ClassAssignmentStatus.FAILED_CLASS_NOT_FOUND, None, None

        class_name = self.enrollment.class_name_for(pending.niveau, pending.filiere, pending.groupe)
        try:
            match = await self.enrollment.find_class(
                pending.niveau,
                pending.filiere,
                pending.groupe,
                academic_year=current_academic_year(),
            )
        except ClassNotFoundError as e:
            logger.warning("Claim continues without class: %s", e)
            return ClassAssignmentStatus.FAILED_CLASS_NOT_FOUND, None, class_name
        except DatabaseError as e:
            logger.error("Class lookup failed during claim: %s", e)
            return ClassAssignmentStatus.FAILED_DB_ERROR, None, class_name

        return ClassAssignmentStatus.ASSIGNED, match.class_id, class_name

    def _profile_from_pending(
        self,
        pending: PendingIdentity,
        request: ActivationRequest,
        assignment: ClassAssignmentStatus,
        class_id: str | None,
    ) -> dict[str, Any]:
        now = utc_now_iso()
        profile = {k: v for k, v in pending.data.items() if k not in _PENDING_ONLY_FIELDS}
        profile.update(
            {
                "matricule": normalize_matricule(pending.matricule),
                "firstName": pending.first_name,
                "lastName": pending.last_name,
                "role": pending.role.value,
                "email": normalize_email(request.email),
                "status": UserStatus.ACTIVE.value,
                "classAssignmentStatus": assignment.value,
                "createdAt": now,
                "claimedAt": now,
            }
        )
        if class_id:
            profile["classId"] = class_id
        return profile

    # =========================================================================
    # Bootstrap administrator
    # =========================================================================

    def _is_bootstrap_email(self, email: str) -> bool:
        return bool(self.bootstrap_admin_email) and normalize_email(email) == self.bootstrap_admin_email

    async def _bootstrap_admin(self, request: ActivationRequest) -> ActivationOutcome:
        uid = request.new_auth_user_id
        email = normalize_email(request.email)

        try:
            existing = await self.store.query(USERS_COLLECTION, {"email": email}, limit=1)
        except DatabaseError as e:
            raise PersistenceError(f"Could not check existing accounts: {e}") from e
        if existing:
            raise PermissionDeniedError("The bootstrap administrator account already exists")

        now = utc_now_iso()
        profile = {
            "matricule": normalize_matricule(request.matricule),
            "firstName": request.first_name,
            "lastName": request.last_name,
            "email": email,
            "role": Role.ADMIN.value,
            "status": UserStatus.ACTIVE.value,
            "classAssignmentStatus": ClassAssignmentStatus.NOT_APPLICABLE.value,
            "createdAt": now,
            "claimedAt": now,
        }
        try:
            await self.store.create(USERS_COLLECTION, uid, profile)
        except DocumentExistsError as e:
            raise PersistenceError("A user profile already exists for this login") from e
        except DatabaseError as e:
            raise PersistenceError(f"Could not create the administrator profile: {e}") from e

        await self._grant_admin_claim(uid)
        logger.info("Bootstrap administrator created: principal=%s", uid)

        return ActivationOutcome(
            state=ActivationState.DONE,
            status=OutcomeStatus.SUCCESS,
            message="Administrator account created.",
            user_profile={**profile, "id": uid},
        )

    async def _grant_admin_claim(self, uid: str) -> None:
        try:
            claims = await self.identity.get_custom_claims(uid)
            await self.identity.set_custom_claims(uid, {**claims, "admin": True})
        except Exception as e:
            # The user document's role still grants admin rights
            logger.error("Could not set admin claim for %s: %s", uid, e)

    # =========================================================================
    # Self-registration path
    # =========================================================================

    async def register_student(self, request: RegistrationRequest) -> ActivationOutcome:
        """Validate a self-registered student, activate and enroll them.

        Safe to call again: an active student whose enrollment failed only
        gets the enrollment retried; a fully activated student gets a
        NoMatchingRecord error.

        Args:
            request: Identity proof, email, principal id, niveau and filiere.

        Returns:
            ActivationOutcome. On error the account stays pending.
        """
        uid = request.new_auth_user_id
        try:
            return await self._register(request)
        except ExternalValidationError as e:
            logger.warning("Registration validation failed for principal %s: %s", uid, e.reason)
            return self._validation_failed(e.reason)
        except ActivationServiceError as e:
            logger.warning("Registration failed for principal %s: %s", uid, e.message)
            return self._error(e.message)
        except Exception as e:
            logger.exception("Unexpected error while registering student %s", uid)
            error = UnknownError(f"An unknown error occurred during validation: {e}")
            return self._error(error.message)

    async def _register(self, request: RegistrationRequest) -> ActivationOutcome:
        uid = request.new_auth_user_id

        try:
            user = await self.store.get(USERS_COLLECTION, uid)
            if user is None:
                student = self._pending_student_profile(request)
                await self.store.create(USERS_COLLECTION, uid, student)
                logger.info("Self-registered student profile created: principal=%s", uid)
            else:
                student = dict(user.data)
        except DocumentExistsError as e:
            raise PersistenceError("Registration is already in progress for this login") from e
        except DatabaseError as e:
            raise PersistenceError(f"Could not load the student profile: {e}") from e

        if student.get("role", Role.STUDENT.value) != Role.STUDENT.value:
            raise PermissionDeniedError("Only students can self-register")

        status = student.get("status")
        if status == UserStatus.ACTIVE.value:
            if student.get("classAssignmentStatus") == ClassAssignmentStatus.ASSIGNED.value:
                raise NoMatchingRecordError("This account has already been activated")
            logger.info("Resuming enrollment for active student %s", uid)
            return await self._enroll_registered(uid, student)
        if status != UserStatus.PENDING.value:
            raise PermissionDeniedError("This account has been deactivated")

        validation = await self.registration_strategy.validate(
            student.get("matricule", request.matricule),
            student.get("firstName", request.first_name),
            student.get("lastName", request.last_name),
        )
        if not validation.ok:
            raise ExternalValidationError(validation.reason or "unknown error")

        try:
            await self.store.update(
                USERS_COLLECTION,
                uid,
                {"status": UserStatus.ACTIVE.value, "activatedAt": utc_now_iso()},
                expected={"status": UserStatus.PENDING.value},
            )
        except (PreconditionFailedError, DocumentNotFoundError) as e:
            raise NoMatchingRecordError("This account has already been activated") from e
        except DatabaseError as e:
            raise PersistenceError(f"Could not activate the account: {e}") from e
        logger.info("Self-registered student activated: principal=%s", uid)

        return await self._enroll_registered(uid, student)

    def _pending_student_profile(self, request: RegistrationRequest) -> dict[str, Any]:
        profile: dict[str, Any] = {
            "matricule": normalize_matricule(request.matricule),
            "firstName": request.first_name.strip(),
            "lastName": request.last_name.strip(),
            "email": normalize_email(request.email),
            "role": Role.STUDENT.value,
            "status": UserStatus.PENDING.value,
            "niveau": request.niveau.value,
            "filiere": request.filiere.value,
            "createdAt": utc_now_iso(),
        }
        if request.groupe is not None:
            profile["groupe"] = request.groupe
        return profile

    async def _enroll_registered(self, uid: str, student: dict[str, Any]) -> ActivationOutcome:
        niveau = student.get("niveau")
        filiere = student.get("filiere")
        if not niveau or not filiere:
            await self._record_assignment(uid, ClassAssignmentStatus.FAILED_CLASS_NOT_FOUND)
            return ActivationOutcome(
                state=ActivationState.ENROLLMENT_DEGRADED,
                status=OutcomeStatus.WARNING,
                message="Account activated, but no niveau/filiere is recorded for class assignment.",
            )

        result: EnrollmentOutcome = await self.enrollment.resolve_and_enroll(
            uid,
            niveau,
            filiere,
            group_number=student.get("groupe"),
        )
        if result.class_found:
            return ActivationOutcome(
                state=ActivationState.DONE,
                status=OutcomeStatus.SUCCESS,
                message=f"Student successfully validated and assigned to class {result.class_name}.",
                class_id=result.class_id,
            )

        return ActivationOutcome(
            state=ActivationState.ENROLLMENT_DEGRADED,
            status=OutcomeStatus.WARNING,
            message=self._degraded_message(result.status, result.class_name),
        )

    async def _record_assignment(self, uid: str, status: ClassAssignmentStatus) -> None:
        try:
            await self.store.update(USERS_COLLECTION, uid, {"classAssignmentStatus": status.value})
        except DatabaseError as e:
            logger.error("Could not record %s for %s: %s", status.value, uid, e)

    # =========================================================================
    # Outcomes
    # =========================================================================

    @staticmethod
    def _degraded_message(status: ClassAssignmentStatus, class_name: str | None) -> str:
        if status == ClassAssignmentStatus.FAILED_DB_ERROR:
            return (
                "Account activated, but the class assignment could not be saved. "
                "Please contact the administration."
            )
        if class_name:
            return (
                f'Account activated, but class "{class_name}" was not found. '
                "Please contact the administration."
            )
        return "Account activated, but no class could be assigned. Please contact the administration."

    @staticmethod
    def _validation_failed(reason: str) -> ActivationOutcome:
        return ActivationOutcome(
            state=ActivationState.VALIDATION_FAILED,
            status=OutcomeStatus.ERROR,
            message=(
                f"External validation failed: {reason}. "
                "The account remains pending."
            ),
        )

    @staticmethod
    def _error(message: str) -> ActivationOutcome:
        return ActivationOutcome(
            state=ActivationState.ERROR,
            status=OutcomeStatus.ERROR,
            message=message,
        )
