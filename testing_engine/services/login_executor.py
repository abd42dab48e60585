"""Login executor: authenticates the sweep browser against the admin login form."""

import logging
from typing import List, Optional
from urllib.parse import urlparse

from testing_engine.utils.config import settings

logger = logging.getLogger(__name__)


class LoginError(RuntimeError):
    """Authentication failed; the sweep cannot visit any page."""


class LoginExecutor:
    """Fills and submits the login form, then waits to leave the login route."""

    # Explicit test hooks first, semantic attributes as fallback
    EMAIL_SELECTORS = ['[data-testid="input-email"]', 'input[type="email"]', 'input[name="email"]']
    PASSWORD_SELECTORS = ['[data-testid="input-password"]', 'input[type="password"]', 'input[name="password"]']
    SUBMIT_SELECTORS = [
        '[data-testid="button-login-submit"]',
        '[data-testid="button-login"]',
        'button[type="submit"]',
    ]

    LOGIN_PATH = "/login"

    async def _first_present(self, page, selectors: List[str], run_id: str, field: str):
        for selector in selectors:
            try:
                locator = page.locator(selector)
                if await locator.count() > 0:
                    logger.debug(f"[{run_id}] Using {field} selector: {selector}")
                    return locator.first
            except Exception as e:
                logger.debug(f"[{run_id}] Failed selector {selector}: {e}")
        raise LoginError(f"Could not find {field} field")

    @classmethod
    def _left_login(cls, url: str) -> bool:
        return cls.LOGIN_PATH not in urlparse(url).path

    async def login(
        self,
        page,
        run_id: str,
        base_url: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None
    ) -> str:
        """
        Log in once for the whole run.

        Args:
            page: Playwright Page object
            run_id: Run identifier
            base_url: Application base URL (defaults to E2E_BASE_URL)
            email: Login email (defaults to SUPER_ADMIN_EMAIL)
            password: Login password (defaults to SUPER_ADMIN_PASSWORD)

        Returns:
            URL reached after the redirect

        Raises:
            LoginError: on missing credentials, missing form or no redirect
        """
        base_url = (base_url or settings.E2E_BASE_URL).rstrip("/")
        email = email or settings.SUPER_ADMIN_EMAIL
        password = password or settings.SUPER_ADMIN_PASSWORD

        if not email or not password:
            raise LoginError("Missing SUPER_ADMIN_EMAIL or SUPER_ADMIN_PASSWORD")

        try:
            await page.goto(
                f"{base_url}{self.LOGIN_PATH}",
                wait_until="networkidle",
                timeout=settings.NAVIGATION_TIMEOUT_MS,
            )
            await page.wait_for_selector(
                ", ".join(self.EMAIL_SELECTORS), timeout=settings.LOGIN_FORM_TIMEOUT_MS
            )

            email_input = await self._first_present(page, self.EMAIL_SELECTORS, run_id, "email")
            password_input = await self._first_present(page, self.PASSWORD_SELECTORS, run_id, "password")
            submit_button = await self._first_present(page, self.SUBMIT_SELECTORS, run_id, "submit")

            await email_input.fill(email)
            await password_input.fill(password)
            await submit_button.click()

            await page.wait_for_url(self._left_login, timeout=settings.LOGIN_REDIRECT_TIMEOUT_MS)
        except LoginError:
            raise
        except Exception as e:
            raise LoginError(f"Login failed: {e}") from e

        logger.info(f"[{run_id}] Logged in, now at {page.url}")
        return page.url


_login_executor: Optional[LoginExecutor] = None


def get_login_executor() -> LoginExecutor:
    """Get global login executor instance."""
    global _login_executor
    if _login_executor is None:
        _login_executor = LoginExecutor()
    return _login_executor
