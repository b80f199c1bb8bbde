"""SIM implementation - scripted conversations for testing."""

import asyncio
import random
from typing import Protocol

import httpx

from playbook.logging_config import get_logger

logger = get_logger(__name__)


class ISim(Protocol):
    """Generate test conversations through the API."""

    async def start(self) -> None:
        """Start scripted scenario."""
        ...

    async def stop(self) -> None:
        """Stop scenario."""
        ...


class Sim:
    """SIM with a scripted scenario: users counting with the async script."""

    def __init__(self, api_url: str = "http://localhost:8000"):
        self._api_url = api_url
        self._running = False
        self._task: asyncio.Task | None = None
        self._client: httpx.AsyncClient | None = None
        self.replies: list[tuple[str, str]] = []

    async def start(self) -> None:
        """Start scripted scenario."""
        if self._running:
            return

        self._running = True
        self._client = httpx.AsyncClient()

        # Start background task
        self._task = asyncio.create_task(self._run_scenario())

    async def stop(self) -> None:
        """Stop scenario."""
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        if self._client:
            await self._client.aclose()

    async def _run_scenario(self) -> None:
        """Run scripted scenario."""
        # Define virtual users
        virtual_users = [
            {"user_id": "user_001", "user_name": "alice", "room": "general"},
            {"user_id": "user_002", "user_name": "bob", "room": "general"},
            {"user_id": "user_003", "user_name": "charlie", "room": "random"},
        ]

        # Each user plays through the same conversation
        conversation = ["do async", "count {ms}", "start"]

        try:
            logger.info("SIM started with %s users", len(virtual_users))
            for step in conversation:
                if not self._running:
                    break

                for user in virtual_users:
                    if not self._running:
                        break

                    text = step.format(ms=random.randint(100, 500))
                    await self._send_message(user, text)

                    # Random delay between messages
                    await asyncio.sleep(random.uniform(0.2, 1))

            await self._log_matches()

        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error("SIM scenario error: %s", e)
        finally:
            logger.info("SIM completed")

    async def _send_message(self, user: dict, text: str) -> None:
        """Send a message via HTTP API."""
        if not self._client:
            return

        try:
            response = await self._client.post(
                f"{self._api_url}/api/messages",
                json={**user, "text": text},
                timeout=10.0,
            )

            if response.status_code == 200:
                replies = response.json().get("replies", [])
                logger.info("SIM: %s -> %s", user["user_name"], text)
                for reply in replies:
                    logger.info("SIM: Reply: %s", reply)
                    self.replies.append((user["user_name"], reply))
            else:
                logger.error(
                    "SIM: Error sending message: %s",
                    response.status_code,
                )

        except Exception as e:
            logger.error("SIM: Failed to send message: %s", e)

    async def _log_matches(self) -> None:
        """Log how many replies matched a branch, per path key."""
        if not self._client:
            return

        response = await self._client.get(
            f"{self._api_url}/api/transcript",
            params={"event": "match", "limit": 1000},
            timeout=10.0,
        )
        if response.status_code != 200:
            logger.error("SIM: Error fetching transcript: %s", response.status_code)
            return

        counts: dict[str, int] = {}
        for record in response.json():
            key = record.get("instance", {}).get("key") or "unkeyed"
            counts[key] = counts.get(key, 0) + 1
        logger.info("SIM: Matches by path %s", counts)
