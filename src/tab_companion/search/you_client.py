"""
You.com API client for agent-based summarization.
"""

from typing import Any, Optional

import httpx


class YouAPIClient:
    """Async client for the You.com agent API."""

    AGENT_BASE_URL = "https://api.you.com"

    def __init__(self, api_key: str, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize the You.com API client.

        Args:
            api_key: Your You.com API key
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.api_key = api_key
        self.agent_client = httpx.AsyncClient(
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def express_agent_search(
        self,
        input: str,
        stream: bool = False,
    ) -> dict[str, Any]:
        """
        Use You.com Express Agent for a low-latency answer.

        Args:
            input: Query or prompt for the agent
            stream: Enable server-sent events for streaming (default: False)

        Returns:
            Agent response, e.g.
            {"output": [{"type": "chat_node.answer", "text": "..."}]}
        """
        payload = {
            "agent": "express",
            "input": input,
            "stream": stream,
        }

        response = await self.agent_client.post(
            f"{self.AGENT_BASE_URL}/v1/agents/runs",
            json=payload,
        )
        response.raise_for_status()
        return response.json()

    @staticmethod
    def answer_text(response: dict[str, Any]) -> Optional[str]:
        """Extract the answer text from an agent response."""
        for output in response.get("output", []):
            if output.get("type") in ["message.answer", "chat_node.answer"]:
                text = (output.get("text") or "").strip()
                if text:
                    return text
        return None

    async def close(self):
        """Close the HTTP client."""
        await self.agent_client.aclose()

    async def __aenter__(self):
        """Context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        await self.close()
