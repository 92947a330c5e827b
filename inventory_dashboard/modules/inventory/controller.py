from __future__ import annotations

import asyncio
import logging
from typing import Optional, Set

from PySide6.QtCore import Signal
from PySide6.QtWidgets import QDialog, QWidget

from ..base_module import BaseModule
from ..login.permissions import Capability
from ..login.session import SessionManager
from ...backend.records import MaterialEdit, MaterialRef, NewMaterial
from ...errors import InventoryDashboardError, ValidationError
from .cache import InventoryCache, InventoryState
from .details import MaterialDetailsDialog
from .edit_form import EditMaterialDialog
from .forms import validate_stock_request
from .material_form import NewMaterialDialog
from .view import InventoryView

_log = logging.getLogger(__name__)


class InventoryController(BaseModule):
    """
    Inventory page: KPIs, materials, recent movements, stock adjustments,
    material details and (for editors) create/edit forms.

    Errors never end up as dialogs; they go out through
    `notify(level, message)` and the main window shows them as toasts.
    """

    notify = Signal(str, str)  # level ("info" | "warning" | "error"), message

    def __init__(self, cache: InventoryCache, session: SessionManager, parent: QWidget | None = None):
        super().__init__()
        self.cache = cache
        self.session = session
        self.consumer = cache.consumer()
        self.view = InventoryView(parent)
        self._dialog: Optional[QDialog] = None
        self._tasks: Set[asyncio.Task] = set()

        self._unwatch_state = self.consumer.watch(self._render)
        self._unwatch_session = session.watch(lambda _s: self.apply_permissions())

        self.view.refresh_requested.connect(lambda: self._spawn(self.load(force=True)))
        self.view.search_requested.connect(lambda text: self._spawn(self.search(text)))
        self.view.adjust_requested.connect(lambda op, qty, comment: self._spawn(self.adjust(op, qty, comment)))
        self.view.new_material_requested.connect(lambda: self._spawn(self.open_new_material()))
        self.view.details_requested.connect(self.open_details)
        self.view.edit_requested.connect(lambda: self._spawn(self.open_edit_material()))

        self.apply_permissions()

    def get_widget(self) -> QWidget:
        return self.view

    # ----------------------------- Public API -----------------------------

    def apply_permissions(self) -> None:
        self.view.apply_permissions(
            can_write=self.session.has_permission(Capability.WRITE),
            can_edit_materials=self.session.has_permission(Capability.EDIT_MATERIALS),
        )

    async def load(self, force: bool = False) -> InventoryState:
        state = await self.consumer.load(force)
        if state.error:
            self.notify.emit("error", f"Could not load the inventory: {state.error}")
        return state

    async def search(self, text: str) -> None:
        if not (text or "").strip():
            self.view.set_materials(self.consumer.state.materials)
            return
        results = await self.consumer.search_materials(text)
        self.view.set_materials(results)
        if not results and self.cache.last_error:
            self.notify.emit("error", f"Search failed: {self.cache.last_error}")

    async def adjust(self, operation: str, quantity: float, comment: str) -> bool:
        if not self.session.has_permission(Capability.WRITE):
            self.notify.emit("warning", "Your role cannot change stock")
            return False

        material = self.view.selected_material()
        try:
            change = validate_stock_request(
                operation, quantity, material.current_stock if material else None, comment
            )
        except ValidationError as e:
            self.notify.emit("warning", e.message)
            return False

        try:
            await self.consumer.update_stock(material.id, change, comment)
        except InventoryDashboardError as e:
            self.notify.emit("error", e.message)
            return False

        self.view.clear_adjustment()
        self.view.select_material(material.id)
        self._report_write("Stock updated")
        return True

    async def create_material(self, new: NewMaterial) -> Optional[MaterialRef]:
        if not self.session.has_permission(Capability.EDIT_MATERIALS):
            self.notify.emit("warning", "Your role cannot create materials")
            return None
        try:
            ref = await self.consumer.create_material(new)
        except InventoryDashboardError as e:
            self.notify.emit("error", e.message)
            return None
        self._report_write(f"Material {ref.code} created")
        return ref

    async def open_new_material(self) -> None:
        categories, locations = await asyncio.gather(
            self.cache.list_categories(), self.cache.list_locations()
        )
        dlg = NewMaterialDialog(self.view, categories=categories, locations=locations)
        dlg.accepted.connect(lambda: self._spawn(self.create_material(dlg.payload())))
        self._dialog = dlg
        dlg.open()

    async def edit_material(self, material_id: str, edit: MaterialEdit) -> bool:
        if not self.session.has_permission(Capability.EDIT_MATERIALS):
            self.notify.emit("warning", "Your role cannot edit materials")
            return False
        try:
            await self.consumer.update_material(material_id, edit)
        except ValidationError as e:
            self.notify.emit("warning", e.message)
            return False
        except InventoryDashboardError as e:
            self.notify.emit("error", e.message)
            return False
        self.view.select_material(material_id)
        self._report_write("Material updated")
        return True

    def open_details(self) -> Optional[MaterialDetailsDialog]:
        material = self.view.selected_material()
        if material is None:
            self.notify.emit("warning", "Select a material first")
            return None
        dlg = MaterialDetailsDialog(material, self.view)
        self._dialog = dlg
        dlg.open()
        return dlg

    async def open_edit_material(self) -> Optional[EditMaterialDialog]:
        if not self.session.has_permission(Capability.EDIT_MATERIALS):
            self.notify.emit("warning", "Your role cannot edit materials")
            return None
        material = self.view.selected_material()
        if material is None:
            self.notify.emit("warning", "Select a material first")
            return None
        categories, locations = await asyncio.gather(
            self.cache.list_categories(), self.cache.list_locations()
        )
        dlg = EditMaterialDialog(material, self.view, categories=categories, locations=locations)
        dlg.accepted.connect(lambda: self._spawn(self.edit_material(material.id, dlg.payload())))
        self._dialog = dlg
        dlg.open()
        return dlg

    def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        self._unwatch_state()
        self._unwatch_session()
        self.consumer.close()

    # ----------------------------- Internals -----------------------------

    def _render(self, state: InventoryState) -> None:
        self.view.set_loading(state.loading)
        if state.loading:
            return
        self.view.set_stats(state.stats)
        if self.view.search.text().strip():
            self._refresh_search_rows(state.materials)
        else:
            self.view.set_materials(state.materials)
        self.view.set_movements(state.movements)

    def _refresh_search_rows(self, materials) -> None:
        """Keep the shown search hits but swap in their latest stock levels."""
        latest = {m.id: m for m in materials}
        shown = self.view.materials_model.rows()
        self.view.set_materials([latest.get(m.id, m) for m in shown])

    def _report_write(self, done: str) -> None:
        stale = self.consumer.state.error
        if stale:
            self.notify.emit("warning", f"{done}, but the list could not be refreshed: {stale}")
        else:
            self.notify.emit("info", done)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            _log.error("Inventory task failed", exc_info=task.exception())
            self.notify.emit("error", "Unexpected error; see the log for details")
