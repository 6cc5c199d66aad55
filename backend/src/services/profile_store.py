"""
Account page state: the authoritative profile and its mutations.

The store loads the profile from ``/me``, exposes it for rendering, and
applies profile and avatar edits through the MutationCoordinator. Avatar
edits also update the ProfileCache so other surfaces (see nav_identity)
pick them up on their next poll.
"""
import logging
from enum import StrEnum

from core.auth_retry import with_auth_retry
from core.config import get_settings
from core.profile_cache import KeyValueStore, default_local_store
from core.session_manager import SessionEvent, SessionManager
from schemas.avatar import AvatarDisplay, is_stock_avatar, resolve_avatar
from schemas.profile import ALLOWED_AVATAR_TYPES, AvatarUpload, Profile, ProfileUpdate
from schemas.session import Session
from schemas.validators import digits_only
from services.account_api import AccountApi
from services.exceptions import AccountError, AuthExpiredError, ValidationError
from services.mutation_coordinator import MutationCoordinator, OperationResult

logger = logging.getLogger(__name__)

RECOVERY_ID_KEY = "recovery_id"
RECOVERY_EMAIL_KEY = "recovery_email"

PROFILE_KEY = "profile"
AVATAR_KEY = "avatar"


class ProfileState(StrEnum):
    """Lifecycle of the account page."""

    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"
    REDIRECT = "redirect"


class ProfileStore:
    """
    Holds the signed-in user's profile for the account page.

    Local state only changes after the server confirms a mutation; a failed
    mutation leaves ``profile`` exactly as it was and sets ``error``.
    """

    def __init__(
        self,
        session_manager: SessionManager,
        api: AccountApi,
        coordinator: MutationCoordinator,
        local_store: KeyValueStore | None = None,
    ) -> None:
        self._session_manager = session_manager
        self._api = api
        self._coordinator = coordinator
        self._local_store = local_store if local_store is not None else default_local_store()
        self.state = ProfileState.UNINITIALIZED
        self.profile: Profile | None = None
        self.error: str | None = None
        self.success: str | None = None
        self.field_errors: dict[str, str] = {}
        self._closed = False
        self._unsubscribe = None

    # --- lifecycle ---

    async def open(self) -> OperationResult[Profile]:
        """Subscribe to session events and load the profile."""
        self._closed = False
        if self._unsubscribe is None:
            self._unsubscribe = self._session_manager.on_session_change(self._on_session_change)
        return await self.load()

    def close(self) -> None:
        """Detach from session events. Results arriving later are discarded."""
        self._closed = True
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_session_change(self, event: SessionEvent, session: Session | None) -> None:
        if event == SessionEvent.SIGNED_OUT:
            self.profile = None
            self.state = ProfileState.REDIRECT

    def _reset_messages(self) -> None:
        self.error = None
        self.success = None
        self.field_errors = {}

    def _record(self, result: OperationResult) -> OperationResult:
        """Copy a result's messages into the surface state."""
        if result.redirect:
            self.profile = None
            self.state = ProfileState.REDIRECT
        elif result.ok:
            self.success = result.message
        elif result.field:
            self.field_errors[result.field] = result.message or ""
        else:
            self.error = result.message
        return result

    # --- reads ---

    async def load(self) -> OperationResult[Profile]:
        """
        Fetch the profile and refresh the identity snapshot.

        An expired session ends in REDIRECT with no error message.
        """
        self.state = ProfileState.LOADING
        self._reset_messages()
        try:
            profile = await with_auth_retry(
                self._session_manager, self._api.get_me, name="load_profile",
            )
        except AuthExpiredError:
            if not self._closed:
                self.profile = None
                self.state = ProfileState.REDIRECT
            return OperationResult(ok=False, redirect=True)
        except AccountError as e:
            logger.warning("profile_load_failed error=%s", e.message)
            if not self._closed:
                self.error = e.message
                self.state = ProfileState.ERROR
            return OperationResult(ok=False, message=e.message)

        if self._closed:
            logger.debug("profile_load_discarded")
            return OperationResult.success(profile)
        self.profile = profile
        self.state = ProfileState.READY
        self._coordinator.profile_cache.write(
            name=profile.name,
            avatar_id=profile.avatar_id,
            custom_avatar_url=profile.custom_avatar_url,
        )
        return OperationResult.success(profile)

    @property
    def display_avatar(self) -> AvatarDisplay:
        """Avatar to draw for the loaded profile."""
        if self.profile is None:
            return resolve_avatar(None, None)
        return resolve_avatar(self.profile.avatar_id, self.profile.custom_avatar_url)

    @property
    def is_incomplete(self) -> bool:
        """True when the user still has to fill in name, phone or CPF."""
        return self.profile is not None and self.profile.is_incomplete

    def _require_profile(self) -> Profile:
        if self.profile is None:
            raise RuntimeError("Profile not loaded; call load() first.")
        return self.profile

    def _set_profile(self, **changes) -> None:
        if self._closed or self.profile is None:
            return
        self.profile = self.profile.model_copy(update=changes)

    # --- mutations ---

    async def update_profile(self, name: str, phone: str, tax_id: str) -> OperationResult:
        """
        Save personal data.

        Only the name is required. The legacy address fields are echoed back
        unchanged since the endpoint replaces the whole record.
        """
        self._reset_messages()
        current = self._require_profile()
        name = name.strip()
        if not name:
            return self._record(OperationResult.from_error(
                ValidationError("name", "O nome é obrigatório."),
            ))

        update = ProfileUpdate(
            name=name,
            phone=digits_only(phone),
            tax_id=digits_only(tax_id),
            address=current.address,
            city=current.city,
            state=current.state,
            cep=current.cep,
        )

        async def remote(token: str) -> ProfileUpdate:
            await self._api.update_profile(token, update)
            return update

        result = await self._coordinator.run(
            PROFILE_KEY,
            remote,
            apply=lambda u: self._set_profile(name=u.name, phone=u.phone, tax_id=u.tax_id),
            snapshot=lambda u: {"name": u.name},
            success_message="Perfil atualizado com sucesso!",
            name="update_profile",
        )
        return self._record(result)

    async def set_avatar(self, avatar_id: str) -> OperationResult:
        """Select a stock avatar. Any custom photo is cleared."""
        self._reset_messages()
        self._require_profile()
        if not is_stock_avatar(avatar_id):
            return self._record(OperationResult.from_error(
                ValidationError("avatar_id", "Avatar inválido."),
            ))

        async def remote(token: str) -> str:
            await self._api.set_avatar(token, avatar_id)
            return avatar_id

        result = await self._coordinator.run(
            AVATAR_KEY,
            remote,
            apply=lambda a: self._set_profile(avatar_id=a, custom_avatar_url=None),
            snapshot=lambda a: {"avatar_id": a, "custom_avatar_url": None},
            success_message="Avatar atualizado!",
            name="set_avatar",
        )
        return self._record(result)

    async def upload_avatar(self, upload: AvatarUpload) -> OperationResult:
        """
        Upload a custom avatar photo.

        Type and size are checked before any network call. The stock
        ``avatar_id`` is kept so it is restored when the photo is removed.
        """
        self._reset_messages()
        self._require_profile()
        max_bytes = get_settings().max_avatar_bytes
        if upload.content_type not in ALLOWED_AVATAR_TYPES:
            return self._record(OperationResult.from_error(ValidationError(
                "avatar", "Formato não suportado. Use PNG, JPEG, WebP ou GIF.",
            )))
        if upload.size > max_bytes:
            return self._record(OperationResult.from_error(ValidationError(
                "avatar", f"Imagem muito grande. Máximo: {max_bytes // (1024 * 1024)}MB.",
            )))

        async def remote(token: str) -> str:
            return await self._api.upload_avatar(token, upload)

        result = await self._coordinator.run(
            AVATAR_KEY,
            remote,
            apply=lambda url: self._set_profile(custom_avatar_url=url),
            snapshot=lambda url: {"custom_avatar_url": url},
            success_message="Foto de perfil atualizada!",
            name="upload_avatar",
        )
        return self._record(result)

    async def remove_custom_avatar(self) -> OperationResult:
        """Remove the custom photo and fall back to the server's stock avatar."""
        self._reset_messages()
        current = self._require_profile()

        async def remote(token: str) -> str | None:
            fallback = await self._api.delete_custom_avatar(token)
            return fallback or current.avatar_id

        result = await self._coordinator.run(
            AVATAR_KEY,
            remote,
            apply=lambda a: self._set_profile(avatar_id=a, custom_avatar_url=None),
            snapshot=lambda a: {"avatar_id": a, "custom_avatar_url": None},
            success_message="Foto removida. Avatar restaurado!",
            name="remove_custom_avatar",
        )
        return self._record(result)

    async def request_password_reset(self) -> OperationResult:
        """Send a password reset e-mail to the profile's address."""
        self._reset_messages()
        email = self._require_profile().email
        try:
            recovery_id = await self._api.forgot_password(email)
        except AccountError as e:
            logger.warning("password_reset_failed error=%s", e.message)
            return self._record(OperationResult.from_error(e))
        if recovery_id:
            self._local_store.set(RECOVERY_ID_KEY, recovery_id)
            self._local_store.set(RECOVERY_EMAIL_KEY, email)
        return self._record(OperationResult.success(
            recovery_id, "Enviamos um link de redefinição para o seu email.",
        ))
