"""Playwright host integration: field primitives, the in-page control panel and notifiers."""
import asyncio
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncIterator, Optional, Tuple

import structlog
from playwright.async_api import ElementHandle, Page
from playwright.async_api import Error as PlaywrightError
from rich.console import Console
from rich.panel import Panel

from pin_tickler.control import ControlState
from pin_tickler.errors import InteractionDispatchFailure
from pin_tickler.interactor import FieldInteractor, SubmitMatcher
from pin_tickler.status_snapshot import StatusSnapshot

if TYPE_CHECKING:
    from pin_tickler.session import Session

log = structlog.get_logger(__name__)

CONTROL_SELECTOR = 'button, [role="button"], input[type="button"], input[type="submit"]'

CONTROL_TEXT_JS = """el => (el.innerText || el.value || el.getAttribute('aria-label') || '').trim()"""

SET_NATIVE_VALUE_JS = """(el, value) => {
    const setter = Object.getOwnPropertyDescriptor(window.HTMLInputElement.prototype, 'value')?.set;
    if (setter) setter.call(el, value);
    else el.value = value;
}"""

SUBMIT_FORM_JS = """el => {
    if (el.form && typeof el.form.submit === 'function') {
        el.form.submit();
        return true;
    }
    return false;
}"""

PANEL_ID = "__pin_tickler_panel"
BINDING_NAME = "__pinTicklerAction"

PANEL_JS = """([id, binding]) => {
    document.getElementById(id)?.remove();
    const panel = document.createElement('div');
    panel.id = id;
    Object.assign(panel.style, {
        position: 'fixed', left: '12px', bottom: '12px', zIndex: 2147483647,
        background: 'rgba(17,17,17,0.95)', color: '#fff', padding: '10px 12px',
        borderRadius: '8px', fontFamily: 'system-ui, sans-serif', fontSize: '13px', width: '300px',
    });
    panel.innerHTML = `
        <div style="font-weight:700;margin-bottom:6px;">pin-tickler</div>
        <div data-role="info" style="font-size:12px;">Ready</div>
        <div data-role="last" style="font-size:12px;">last: -</div>
        <div style="display:flex;gap:8px;margin-top:8px;">
          <button data-action="auto_submit" style="flex:1">ENABLE AUTO-SUBMIT</button>
          <button data-action="pause" style="flex:1">PAUSED</button>
        </div>
        <div style="display:flex;gap:8px;margin-top:8px;">
          <button data-action="stop" style="flex:1">STOP</button>
          <button data-action="reset" style="flex:1">RESET</button>
        </div>`;
    for (const btn of panel.querySelectorAll('button[data-action]')) {
        btn.addEventListener('click', () => window[binding](btn.dataset.action));
    }
    document.body.appendChild(panel);
}"""

PANEL_UPDATE_JS = """([id, view]) => {
    const panel = document.getElementById(id);
    if (!panel) return;
    const q = sel => panel.querySelector(sel);
    if (view.info !== null) q('[data-role="info"]').textContent = view.info;
    if (view.last !== null) q('[data-role="last"]').textContent = `last: ${view.last}`;
    const auto = q('[data-action="auto_submit"]');
    auto.textContent = view.autoSubmit ? 'AUTO-SUBMIT: ENABLED' : 'ENABLE AUTO-SUBMIT';
    auto.disabled = view.autoSubmit;
    q('[data-action="pause"]').textContent = view.mode === 'running' ? 'RUNNING' : 'PAUSED';
    const stop = q('[data-action="stop"]');
    stop.textContent = view.mode === 'stopped' ? 'STOPPED' : 'STOP';
    stop.disabled = view.mode === 'stopped';
}"""

PANEL_REMOVE_JS = "id => document.getElementById(id)?.remove()"


@asynccontextmanager
async def host_call(action: str) -> AsyncIterator[None]:
    """Translate Playwright failures into InteractionDispatchFailure."""
    try:
        yield
    except PlaywrightError as e:
        raise InteractionDispatchFailure(f"{action} failed: {e.message}") from e


class PageFieldInteractor(FieldInteractor):
    """FieldInteractor backed by a live Playwright page."""

    def __init__(self, page: Page, selector: str, matcher: Optional[SubmitMatcher] = None, *, settle_delay: float = 0.02) -> None:
        super().__init__(matcher, settle_delay=settle_delay)
        self.page = page
        self.selector = selector

    async def locate_field(self) -> Optional[ElementHandle]:
        async with host_call("locate field"):
            return await self.page.query_selector(self.selector)

    async def list_controls(self) -> list[Tuple[ElementHandle, str]]:
        async with host_call("list controls"):
            handles = await self.page.query_selector_all(CONTROL_SELECTOR)
            return [(handle, await handle.evaluate(CONTROL_TEXT_JS)) for handle in handles]

    async def focus(self, field: ElementHandle) -> None:
        async with host_call("focus"):
            await field.focus()

    async def set_native_value(self, field: ElementHandle, value: str) -> None:
        async with host_call("set value"):
            await field.evaluate(SET_NATIVE_VALUE_JS, value)

    async def dispatch(self, field: ElementHandle, event_type: str, **init: Any) -> None:
        async with host_call(f"dispatch {event_type}"):
            await field.dispatch_event(event_type, {"bubbles": True, "composed": True, **init})

    async def blur(self, field: ElementHandle) -> None:
        async with host_call("blur"):
            await field.evaluate("el => el.blur()")

    async def click(self, control: ElementHandle) -> None:
        async with host_call("click"):
            await control.evaluate("el => el.click()")

    async def submit_form(self, field: ElementHandle) -> bool:
        async with host_call("form submit"):
            return bool(await field.evaluate(SUBMIT_FORM_JS))


class PagePanel:
    """In-page control surface wired to a Session.

    attach() replaces any panel already on the page and re-injects it after
    navigations; detach() removes it.
    """

    def __init__(self, page: Page, session: "Session") -> None:
        self.page = page
        self.session = session
        self._exposed = False
        self._attached = False
        self._last: Optional[StatusSnapshot] = None
        self._tasks: set[asyncio.Task] = set()
        session.control.subscribe(self._on_control_change)

    async def attach(self) -> None:
        if not self._exposed:
            await self.page.expose_binding(BINDING_NAME, self._on_action)
            self._exposed = True
        if not self._attached:
            self.page.on("domcontentloaded", self._on_load)
            self._attached = True
        await self._inject()

    async def detach(self) -> None:
        if not self._attached:
            return
        self.page.remove_listener("domcontentloaded", self._on_load)
        self._attached = False
        async with host_call("remove panel"):
            await self.page.evaluate(PANEL_REMOVE_JS, PANEL_ID)

    async def update(self, snapshot: StatusSnapshot) -> None:
        self._last = snapshot
        await self._render()

    async def _inject(self) -> None:
        async with host_call("inject panel"):
            await self.page.evaluate(PANEL_JS, [PANEL_ID, BINDING_NAME])
        await self._render()

    async def _render(self) -> None:
        if not self._attached:
            return
        state = self.session.control.state
        view = {
            "info": self._last.info_line() if self._last else None,
            "last": self._last.last.value if self._last and self._last.last else None,
            "autoSubmit": state.auto_submit_enabled,
            "mode": state.mode.value,
        }
        async with host_call("update panel"):
            await self.page.evaluate(PANEL_UPDATE_JS, [PANEL_ID, view])

    async def _on_action(self, source: Any, action: str) -> None:
        log.info("panel action", action=action)
        if action == "auto_submit":
            self.session.enable_auto_submit()
        elif action == "pause":
            self.session.toggle_pause()
        elif action == "stop":
            await self.session.stop()
        elif action == "reset":
            await self.session.reset()
        else:
            log.warning("unknown panel action", action=action)

    def _on_control_change(self, state: ControlState) -> None:
        if self._attached:
            self._spawn(self._safe_render())

    def _on_load(self, page: Page) -> None:
        self._spawn(self._safe_inject())

    def _spawn(self, coro) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            log.error("panel task failed", error=repr(task.exception()))

    async def _safe_render(self) -> None:
        try:
            await self._render()
        except InteractionDispatchFailure as e:
            log.debug("panel render skipped", error=str(e))

    async def _safe_inject(self) -> None:
        try:
            await self._inject()
        except InteractionDispatchFailure as e:
            log.warning("panel re-inject failed", error=str(e))


class ConsoleNotifier:
    """Blocking, user-visible notification on the terminal."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    async def __call__(self, message: str) -> None:
        self.console.print(Panel(message, title="pin-tickler", border_style="bold yellow"))


class PageAlertNotifier:
    """Shows the message with window.alert in the page and blocks until the user closes it.

    Headless there is nobody to close the dialog, so the message goes to the
    console instead and page dialogs are left to Playwright's auto-dismiss.
    """

    def __init__(self, page: Page, *, headless: bool = False, console: Optional[Console] = None) -> None:
        self.page = page
        self.headless = headless
        self.console_notifier = ConsoleNotifier(console)
        if not headless:
            # a dialog listener keeps dialogs open for the user
            page.on("dialog", self._on_dialog)

    async def __call__(self, message: str) -> None:
        if self.headless:
            await self.console_notifier(message)
            return
        async with host_call("alert"):
            await self.page.evaluate("message => alert(message)", message)

    def _on_dialog(self, dialog) -> None:
        log.info("dialog open", type=dialog.type, message=dialog.message)
