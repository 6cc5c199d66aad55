"""Address book surface: saved addresses, the edit form and CEP autofill."""
import logging

from core.auth_retry import with_auth_retry
from core.config import get_settings
from core.session_manager import SessionEvent, SessionManager
from schemas.address import Address, AddressForm, AddressPayload
from schemas.session import Session
from schemas.validators import BR_STATES, digits_only, format_cep
from services.account_api import AccountApi
from services.exceptions import (
    AccountError,
    AuthExpiredError,
    NetworkError,
    NotFoundError,
    ValidationError,
)
from services.mutation_coordinator import MutationCoordinator, OperationResult
from services.postal_lookup import PostalLookup

logger = logging.getLogger(__name__)

ADDRESSES_KEY = "addresses"

# Form fields CEP autofill may write into, matching PostalAddress attributes
_AUTOFILL_FIELDS = ("street", "neighborhood", "city", "state", "complement")


class AddressBook:
    """
    The user's saved addresses.

    Every mutation adopts the full list the server returns; the local list
    is never patched in place except for the optimistic default switch.
    """

    def __init__(
        self,
        session_manager: SessionManager,
        api: AccountApi,
        coordinator: MutationCoordinator,
        postal_lookup: PostalLookup,
        max_addresses: int | None = None,
    ) -> None:
        self._session_manager = session_manager
        self._api = api
        self._coordinator = coordinator
        self._postal_lookup = postal_lookup
        self._max_addresses = max_addresses or get_settings().max_addresses
        self.addresses: list[Address] = []
        self.loaded = False
        self.redirect = False
        self.error: str | None = None
        self.success: str | None = None
        self.form: AddressForm | None = None
        self.editing_id: str | None = None
        self.form_error: str | None = None
        self.cep_error: str | None = None
        self.cep_loading = False
        self._cep_lookups = 0
        self._closed = False
        self._unsubscribe = session_manager.on_session_change(self._on_session_change)

    def close(self) -> None:
        """Detach from session events. Results arriving later are discarded."""
        self._closed = True
        self._unsubscribe()

    def _on_session_change(self, event: SessionEvent, session: Session | None) -> None:
        if event == SessionEvent.SIGNED_OUT:
            self.addresses = []
            self.loaded = False
            self.cancel_form()

    def _adopt(self, addresses: list[Address]) -> None:
        if self._closed:
            return
        self.addresses = list(addresses)
        self.loaded = True

    @property
    def default_address(self) -> Address | None:
        """The address flagged as default, if any."""
        return next((a for a in self.addresses if a.is_default), None)

    @property
    def can_add(self) -> bool:
        """False once the address limit is reached."""
        return len(self.addresses) < self._max_addresses

    async def load(self) -> OperationResult[list[Address]]:
        """Fetch the saved addresses. An empty list is a valid result."""
        self.error = None
        try:
            addresses = await with_auth_retry(
                self._session_manager, self._api.list_addresses, name="list_addresses",
            )
        except AuthExpiredError:
            if not self._closed:
                self.redirect = True
            return OperationResult(ok=False, redirect=True)
        except AccountError as e:
            logger.warning("address_load_failed error=%s", e.message)
            if not self._closed:
                self.error = e.message
            return OperationResult(ok=False, message=e.message)
        self._adopt(addresses)
        return OperationResult.success(addresses)

    # --- form ---

    def open_new_form(self) -> None:
        """Start creating an address."""
        self.editing_id = None
        self.form = AddressForm()
        self.form_error = None
        self.cep_error = None

    def open_edit_form(self, address_id: str) -> None:
        """Start editing a saved address."""
        address = next((a for a in self.addresses if a.id == address_id), None)
        if address is None:
            raise KeyError(address_id)
        self.editing_id = address_id
        self.form = AddressForm.from_address(address)
        self.form_error = None
        self.cep_error = None

    def cancel_form(self) -> None:
        """Close the form, dropping unsaved input."""
        self.form = None
        self.editing_id = None
        self.form_error = None
        self.cep_error = None

    async def set_cep(self, value: str) -> None:
        """
        Update the form's CEP as typed.

        Reaching exactly 8 digits triggers an autofill lookup.
        """
        if self.form is None:
            return
        self.form.cep = format_cep(value)
        self.cep_error = None
        if len(digits_only(self.form.cep)) == 8:
            await self.lookup_cep()

    async def lookup_cep(self) -> None:
        """
        Fill empty address fields from the form's CEP.

        Fields the user already typed are never overwritten. Failures only set
        ``cep_error``; the form stays editable. A result is dropped if the CEP
        in the form changed while the lookup was running.
        """
        if self.form is None:
            return
        cep = digits_only(self.form.cep)
        self._cep_lookups += 1
        lookup_id = self._cep_lookups
        self.cep_loading = True
        try:
            found = await self._postal_lookup.lookup(cep)
        except (NotFoundError, ValidationError):
            self._set_cep_error(cep, "CEP não encontrado")
            return
        except NetworkError:
            self._set_cep_error(cep, "Erro ao buscar CEP")
            return
        finally:
            # Only the most recent lookup owns the loading flag
            if lookup_id == self._cep_lookups:
                self.cep_loading = False

        if self._closed or self.form is None or digits_only(self.form.cep) != cep:
            logger.debug("cep_lookup_discarded cep=%s", cep)
            return
        for field in _AUTOFILL_FIELDS:
            value = getattr(found, field)
            if value and not getattr(self.form, field):
                setattr(self.form, field, value)

    def _set_cep_error(self, cep: str, message: str) -> None:
        if self.form is not None and digits_only(self.form.cep) == cep:
            self.cep_error = message

    def validate_form(self) -> ValidationError | None:
        """Return the first problem with the form, or None when it can be submitted."""
        form = self.form
        if form is None:
            return ValidationError("form", "Nenhum endereço em edição.")
        if not form.street.strip():
            return ValidationError("street", "Informe a rua/logradouro")
        if not form.number.strip():
            return ValidationError("number", "Informe o número")
        if not form.neighborhood.strip():
            return ValidationError("neighborhood", "Informe o bairro")
        if not form.city.strip():
            return ValidationError("city", "Informe a cidade")
        if form.state.strip().upper() not in BR_STATES:
            return ValidationError("state", "Selecione o estado")
        if len(digits_only(form.cep)) != 8:
            return ValidationError("cep", "Informe um CEP válido")
        if self.editing_id is None and not self.can_add:
            return ValidationError(
                "addresses", f"Limite de {self._max_addresses} endereços atingido.",
            )
        return None

    # --- mutations ---

    async def save(self) -> OperationResult[list[Address]]:
        """Create or update the address in the form."""
        self.success = None
        problem = self.validate_form()
        if problem is not None:
            self.form_error = problem.message
            return OperationResult.from_error(problem)
        self.form_error = None

        form = self.form
        editing_id = self.editing_id
        payload = AddressPayload(
            label=form.label or "Casa",
            cep=digits_only(form.cep),
            street=form.street.strip(),
            number=form.number.strip(),
            complement=form.complement.strip(),
            neighborhood=form.neighborhood.strip(),
            city=form.city.strip(),
            state=form.state.strip().upper(),
            # The first address is always the default
            is_default=form.is_default or not self.addresses,
        )

        async def remote(token: str) -> list[Address]:
            if editing_id is not None:
                return await self._api.update_address(token, editing_id, payload.to_wire())
            return await self._api.create_address(token, payload)

        result = await self._coordinator.run(
            ADDRESSES_KEY,
            remote,
            apply=self._adopt,
            success_message="Endereço atualizado!" if editing_id else "Endereço adicionado!",
            name="save_address",
        )
        if result.ok:
            self.cancel_form()
            self.success = result.message
        elif result.redirect:
            self.redirect = True
        else:
            self.form_error = result.message or "Erro ao salvar endereço"
        return result

    async def delete(self, address_id: str) -> OperationResult[list[Address]]:
        """Delete a saved address."""
        self.success = None
        self.error = None

        async def remote(token: str) -> list[Address]:
            return await self._api.delete_address(token, address_id)

        result = await self._coordinator.run(
            ADDRESSES_KEY,
            remote,
            apply=self._adopt,
            success_message="Endereço removido.",
            name="delete_address",
        )
        return self._record(result)

    async def set_default(self, address_id: str) -> OperationResult[list[Address]]:
        """
        Make an address the default.

        Shown immediately and rolled back if the server refuses.
        """
        self.success = None
        self.error = None

        def optimistic():
            previous = self.addresses
            self.addresses = [
                a.model_copy(update={"is_default": a.id == address_id}) for a in previous
            ]

            def rollback() -> None:
                if not self._closed:
                    self.addresses = previous

            return rollback

        async def remote(token: str) -> list[Address]:
            return await self._api.update_address(token, address_id, {"isDefault": True})

        result = await self._coordinator.run(
            ADDRESSES_KEY,
            remote,
            apply=self._adopt,
            optimistic=optimistic,
            success_message="Endereço padrão atualizado!",
            name="set_default_address",
        )
        return self._record(result)

    def _record(self, result: OperationResult) -> OperationResult:
        if result.ok:
            self.success = result.message
        elif result.redirect:
            self.redirect = True
        else:
            self.error = result.message
        return result
