import os
import threading

import pytest

from oidc_test_cli.callback_listener import CODE_RECEIVED_MESSAGE, CallbackListener

pytestmark = pytest.mark.skipif(
    os.getenv("OIDC_E2E_PLAYWRIGHT") != "1",
    reason=(
        "Playwright E2E tests are opt-in. Set OIDC_E2E_PLAYWRIGHT=1 and run "
        "`python -m playwright install chromium` to enable."
    ),
)


def test_browser_redirect_delivers_code_with_playwright() -> None:
    try:
        from playwright.sync_api import sync_playwright  # type: ignore[import]
    except Exception:  # pragma: no cover - environment-specific
        pytest.skip("playwright not available in this environment")

    listener = CallbackListener("http://127.0.0.1:0/callback")
    listener.start()
    results = []
    waiter = threading.Thread(
        target=lambda: results.append(listener.wait(timeout=30)), daemon=True
    )
    waiter.start()

    with sync_playwright() as p:
        browser = p.chromium.launch()
        page = browser.new_page()
        page.goto(
            f"http://127.0.0.1:{listener.port}/callback?code=browser-code&state=s1",
            wait_until="load",
        )
        assert CODE_RECEIVED_MESSAGE in page.inner_text("#message")
        browser.close()

    waiter.join(timeout=30)
    assert results and results[0].code == "browser-code"
    assert results[0].state == "s1"
