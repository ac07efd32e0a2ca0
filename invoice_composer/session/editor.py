"""
Invoice Editor Module.

The InvoiceEditor is the entry point used by form widgets and front ends.
It owns the invoice being edited, applies each mutation in memory
immediately and hands the new value to the Auto-Save Controller.

On construction the editor:
    1. Starts from the default sample invoice
    2. Merges the stored company profile, if any
    3. Restores the session snapshot (and its timestamp), if any

Usage:
    editor = InvoiceEditor.open(SQLiteStore(), MemoryStore())
    editor.update_field("client_name", "Globex")
    item = editor.add_item()
    editor.update_item(item.id, "unit_price", 250)

Author: Invoice Composer Team
"""

import uuid
from typing import Any, List, Optional

from invoice_composer.calculation.engine import InvoiceTotals, calculate_totals, update_item_field
from invoice_composer.imaging.upload import LogoUploader, LogoUploadResult, UploadedFile
from invoice_composer.models.invoice import InvoiceData, InvoiceItem
from invoice_composer.models.profile import CompanyProfile, merge_company_profile
from invoice_composer.models.template import InvoiceTemplate, apply_template
from invoice_composer.storage.backends import KeyValueStore
from invoice_composer.storage.stores import CompanyProfileStore, SessionStore, TemplateStore
from invoice_composer.utils.exceptions import ValidationError
from invoice_composer.utils.helpers import parse_iso_timestamp, to_snake_case
from invoice_composer.utils.logger import get_logger
from .autosave import AutoSaveController
from .clock import Clock, SystemClock

# Initialize module logger
logger = get_logger(__name__)


class InvoiceEditor:
    """
    Editing session for one invoice.

    Attributes:
        profiles: Company profile store.
        templates: Template store.
        session: Session snapshot store.
        clock: Time source shared with the auto-save controller.
        autosave: Debounced snapshot writer.
        uploader: Logo upload handler.
    """

    def __init__(
        self,
        profiles: CompanyProfileStore,
        templates: TemplateStore,
        session: SessionStore,
        clock: Optional[Clock] = None,
        autosave: Optional[AutoSaveController] = None,
        uploader: Optional[LogoUploader] = None,
        initial: Optional[InvoiceData] = None
    ) -> None:
        self.profiles = profiles
        self.templates = templates
        self.session = session
        self.clock = clock or SystemClock()
        self.autosave = autosave or AutoSaveController(session, self.clock)
        self.uploader = uploader or LogoUploader()

        self._data = initial or InvoiceData.default(self.clock.now().date())
        self._restore()

    @classmethod
    def open(
        cls,
        local_store: KeyValueStore,
        session_store: KeyValueStore,
        clock: Optional[Clock] = None,
        **kwargs: Any
    ) -> 'InvoiceEditor':
        """
        Build an editor over a persistent and an ephemeral backend.

        Args:
            local_store: Backend for the profile and templates.
            session_store: Backend for the session snapshot.
            clock: Time source; the wall clock if omitted.
        """
        clock = clock or SystemClock()
        return cls(
            profiles=CompanyProfileStore(local_store),
            templates=TemplateStore(local_store, now=clock.now),
            session=SessionStore(session_store, now=clock.now),
            clock=clock,
            **kwargs
        )

    def _restore(self) -> None:
        profile = self.profiles.load()
        if profile is not None:
            self._data = merge_company_profile(self._data, profile)
            logger.info("Company profile merged into new invoice")

        data, timestamp = self.session.load()
        if data is not None:
            self._data = data
            self.autosave.restore(parse_iso_timestamp(timestamp))
            logger.info(f"Session restored (invoice {data.invoice_number}, saved {timestamp})")

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def data(self) -> InvoiceData:
        return self._data

    @property
    def totals(self) -> InvoiceTotals:
        return calculate_totals(self._data)

    @property
    def is_saving(self) -> bool:
        return self.autosave.is_saving

    @property
    def last_saved_at(self):
        return self.autosave.last_saved_at

    def _set(self, data: InvoiceData) -> InvoiceData:
        self._data = data
        self.autosave.schedule(data)
        return data

    # ------------------------------------------------------------------
    # Field and item edits
    # ------------------------------------------------------------------

    def update_field(self, name: str, value: Any) -> InvoiceData:
        """
        Set one invoice field.

        Raises:
            ValidationError: If the field is unknown or the value invalid.
        """
        return self._set(self._data.with_field(name, value))

    def add_item(self) -> InvoiceItem:
        """Append a blank line (quantity 1, price 0) and return it."""
        item = InvoiceItem(id=uuid.uuid4().hex[:12], description="", quantity=1, unit_price=0)
        self._set(self._data.with_field('items', [*self._data.items, item]))
        return item

    def remove_item(self, item_id: str) -> bool:
        """
        Remove a line by id.

        Returns:
            False if no line has that id.
        """
        if self._data.find_item(item_id) is None:
            return False
        items = [item for item in self._data.items if item.id != item_id]
        self._set(self._data.with_field('items', items))
        return True

    def update_item(self, item_id: str, field_name: str, value: Any) -> InvoiceItem:
        """
        Change one field of a line.

        Raises:
            ValidationError: If the line does not exist, the field is not
                editable or the value is not a number where one is needed.
        """
        current = self._data.find_item(item_id)
        if current is None:
            raise ValidationError('items', item_id, "No item with this id")

        try:
            updated = update_item_field(current, to_snake_case(field_name), value)
        except (TypeError, ValueError) as e:
            raise ValidationError(field_name, value, str(e))

        items = [updated if item.id == item_id else item for item in self._data.items]
        self._set(self._data.with_field('items', items))
        return updated

    # ------------------------------------------------------------------
    # Company profile
    # ------------------------------------------------------------------

    def save_company_profile(self) -> bool:
        return self.profiles.save(CompanyProfile.from_invoice(self._data))

    def load_company_profile(self) -> bool:
        """Merge the stored profile into the invoice; False if none is stored."""
        profile = self.profiles.load()
        if profile is None:
            return False
        self._set(merge_company_profile(self._data, profile))
        return True

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def save_as_template(self, name: str, description: str = "") -> bool:
        """
        Store the current invoice as a new template.

        Returns:
            False for an empty name (nothing is stored) or a storage failure.
        """
        try:
            template = InvoiceTemplate.create(
                name, description, data=self._data.to_dict(), now=self.clock.now()
            )
        except ValidationError as e:
            logger.warning(f"Template not saved: {e.message}")
            return False
        return self.templates.save(template)

    def load_template(self, template_id: str) -> bool:
        """Overlay a stored template onto the invoice; False if it does not exist."""
        template = self.templates.get(template_id)
        if template is None or not template.data:
            return False
        try:
            merged = apply_template(self._data, template)
        except ValidationError as e:
            logger.error(f"Template {template_id} holds invalid data: {e}")
            return False
        self._set(merged)
        return True

    def get_templates(self) -> List[InvoiceTemplate]:
        return self.templates.load_all()

    def delete_template(self, template_id: str) -> bool:
        return self.templates.delete(template_id)

    # ------------------------------------------------------------------
    # Logo
    # ------------------------------------------------------------------

    def upload_logo(self, upload: UploadedFile) -> LogoUploadResult:
        """Validate and optimize a logo; on success it becomes ``company_logo``."""
        result = self.uploader.upload(upload)
        if result.success:
            self.update_field('company_logo', result.data_uri)
        return result

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def clear_session(self) -> bool:
        """Drop the pending write and the stored snapshot."""
        self.autosave.cancel()
        cleared = self.session.clear()
        self.autosave.reset_status()
        return cleared

    def reset_invoice(self) -> InvoiceData:
        """Start over from the default invoice; nothing is re-saved."""
        self._data = InvoiceData.default(self.clock.now().date())
        self.clear_session()
        logger.info("Invoice reset to defaults")
        return self._data

    def close(self) -> None:
        self.autosave.close()
