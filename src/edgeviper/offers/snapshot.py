"""Browser snapshots of bookmaker boost pages, plus the sidecar metadata reader."""

from __future__ import annotations

import json
import logging
import random
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import urlparse

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page, Route, sync_playwright
from tenacity import RetryCallState, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from edgeviper.config import get_settings

logger = logging.getLogger(__name__)

USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/125 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:126.0) Gecko/20100101 Firefox/126.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.3 Safari/605.1.15",
)
CONSENT_SELECTORS = (
    "#onetrust-accept-btn-handler",
    'button:has-text("Accept all")',
    'button:has-text("Accept All")',
    'button:has-text("Accept")',
    'button:has-text("I agree")',
    '[aria-label*="accept" i]',
    '[data-testid*="accept" i]',
)
BLOCKED_URL = re.compile(r"\.mp4|\.webm|\.m3u8|analytics|doubleclick|googletagmanager|hotjar|optimizely|scorecardresearch", re.I)

AUTO_SCROLL_JS = """
async () => {
  await new Promise((resolve) => {
    let total = 0;
    const step = 800;
    const timer = setInterval(() => {
      const height = document.body.scrollHeight;
      window.scrollBy(0, step);
      total += step;
      if (total >= height - window.innerHeight) { clearInterval(timer); resolve(); }
    }, 300);
  });
}
"""


class NavigationError(Exception):
    """Server-side failure while loading a page."""


@dataclass
class SnapshotResult:
    html_path: Path
    png_path: Path
    meta_path: Path
    status: int | None


def _retry_log(retry_state: RetryCallState) -> None:  # pragma: no cover - logging helper
    exception = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning("navigation attempt %d failed: %s", retry_state.attempt_number, exception)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.8, min=0.8, max=8),
    retry=retry_if_exception_type((NavigationError, PlaywrightError)),
    after=_retry_log,
    reraise=True,
)
def _goto(page: Page, url: str) -> int:
    response = page.goto(url, wait_until="domcontentloaded", timeout=90_000)
    status = response.status if response else 0
    if status >= 500:
        raise NavigationError(f"{url} returned {status}")
    return status


def _block_noise(route: Route) -> None:
    request = route.request
    if BLOCKED_URL.search(request.url) or request.resource_type in {"media", "eventsource"}:
        route.abort()
    else:
        route.continue_()


def _pause(page: Page, low: int = 350, high: int = 900) -> None:
    page.wait_for_timeout(random.randint(low, high))


def accept_consent(page: Page) -> bool:
    for scope in [page, *page.frames]:
        for selector in CONSENT_SELECTORS:
            try:
                locator = scope.locator(selector).first
                if locator.count():
                    locator.click(timeout=1500)
                    return True
            except PlaywrightError:
                continue
    return False


def snapshot_filename_base(url: str, now: datetime | None = None) -> str:
    parsed = urlparse(url)
    slug = re.sub(r"[^A-Za-z0-9]+", "_", f"{parsed.hostname or ''}{parsed.path}")[:60]
    stamp = (now or datetime.now()).strftime("%Y-%m-%d_%H-%M-%S")
    return f"{stamp}_{slug}"


def snapshot_page(url: str, out_dir: Path | None = None) -> SnapshotResult:
    """Load a boost page in a real browser and save HTML, screenshot and metadata."""

    settings = get_settings()
    out_dir = out_dir or settings.snapshot_dir
    out_dir.mkdir(parents=True, exist_ok=True)
    base = snapshot_filename_base(url)
    html_path = out_dir / f"{base}.html"
    png_path = out_dir / f"{base}.png"
    meta_path = out_dir / f"{base}.meta.json"

    with sync_playwright() as pw:
        browser = pw.chromium.launch(headless=settings.headless)
        try:
            context = browser.new_context(
                user_agent=random.choice(USER_AGENTS),
                locale="en-GB",
                timezone_id="Europe/London",
                viewport={"width": 1280 + random.randint(-80, 60), "height": 900 + random.randint(-50, 80)},
                extra_http_headers={
                    "Accept-Language": "en-GB,en;q=0.9",
                    "Cache-Control": "no-cache",
                    "Referer": settings.bookie_home_url,
                },
            )
            page = context.new_page()
            page.route("**/*", _block_noise)

            try:
                _goto(page, settings.bookie_home_url)
            except (NavigationError, PlaywrightError) as exc:
                logger.info("warm-up navigation failed, continuing: %s", exc)
            _pause(page, 300, 900)

            status: int | None = None
            try:
                status = _goto(page, url)
            except (NavigationError, PlaywrightError) as exc:
                logger.warning("target page kept failing, snapshotting what loaded: %s", exc)

            accept_consent(page)
            _pause(page, 500, 1200)
            page.evaluate(AUTO_SCROLL_JS)
            try:
                page.wait_for_load_state("networkidle", timeout=15_000)
            except PlaywrightError:
                logger.debug("networkidle not reached, continuing")

            page.screenshot(path=str(png_path), full_page=True)
            html_path.write_text(page.content(), encoding="utf-8")
            meta = {
                "url": url,
                "ts": datetime.now(timezone.utc).isoformat(),
                "userAgent": page.evaluate("() => navigator.userAgent"),
            }
            meta_path.write_text(json.dumps(meta, indent=2), encoding="utf-8")
        finally:
            browser.close()

    logger.info("saved snapshot %s (status=%s)", html_path, status)
    return SnapshotResult(html_path=html_path, png_path=png_path, meta_path=meta_path, status=status)


def meta_path_for(html_path: Path) -> Path:
    return html_path.with_name(re.sub(r"\.html$", "", html_path.name, flags=re.I) + ".meta.json")


def read_meta_url(html_path: Path) -> str:
    """Source URL recorded beside a snapshot, or an empty string when there is none."""

    try:
        meta = json.loads(meta_path_for(Path(html_path)).read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return ""
    return str(meta.get("url") or "") if isinstance(meta, dict) else ""
