"""Human-verification (reCAPTCHA v3) for contact submissions."""

import logging
from typing import Optional

import httpx

RECAPTCHA_VERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"


class RecaptchaVerifier:
    """Verifies reCAPTCHA tokens against Google's siteverify endpoint."""

    def __init__(self, secret_key: str, min_score: float = 0.5, timeout: float = 10.0,
                 verify_url: str = RECAPTCHA_VERIFY_URL):
        self._secret_key = secret_key
        self.min_score = min_score
        self._timeout = timeout
        self._verify_url = verify_url
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def verify(self, token: Optional[str], client_ip: Optional[str] = None) -> bool:
        """
        Returns True only for a successful verification scoring at least min_score.
        A missing token or any transport error counts as a failure.
        """
        if not token:
            return False

        data = {"secret": self._secret_key, "response": token}
        if client_ip and client_ip != "unknown":
            data["remoteip"] = client_ip

        try:
            client = await self._get_client()
            response = await client.post(self._verify_url, data=data)
            response.raise_for_status()
            result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logging.error(f"reCAPTCHA verification error: {str(e)}")
            return False

        # v2 responses carry no score
        score = result.get("score", 1.0)
        return bool(result.get("success")) and score >= self.min_score

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
