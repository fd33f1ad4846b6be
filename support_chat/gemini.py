import requests
from typing import Dict, List, Optional
import logging
import statsd

from support_chat.models import SupportType
from support_chat.prompts import select_system_prompt, PRIMING_ACKNOWLEDGEMENT, FALLBACK_RESPONSE

logger = logging.getLogger("support_chat.gemini")

HISTORY_WINDOW = 10

GENERATION_CONFIG = {
    "temperature": 0.7,
    "topK": 40,
    "topP": 0.95,
    "maxOutputTokens": 1024,
}


class UpstreamError(Exception):
    pass


def to_gemini_role(role: Optional[str]) -> str:
    return "user" if role == "user" else "model"


def turn(role: str, text: str) -> Dict:
    return {"role": role, "parts": [{"text": text}]}


class GeminiAssistant:
    """Stateless turn completion against the Gemini generate-content API.

    Gemini gets no system role in this integration, so the system prompt is
    sent as a leading user turn followed by a canned model acknowledgement.
    """

    def __init__(
        self,
        metrics: statsd.StatsClient,
        api_key: str,
        model: str = "gemini-1.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        http: Optional[requests.Session] = None,
    ):
        self.metrics = metrics
        self.api_key = api_key
        self.model_version = model
        self.generate_endpoint = f"{base_url.rstrip('/')}/models/{model}:generateContent"
        self.http = http or requests.Session()

    def build_transcript(
        self,
        message: str,
        support_type: Optional[SupportType],
        subject: Optional[str] = None,
        history: Optional[List[Dict]] = None,
    ) -> List[Dict]:
        contents = [
            turn("user", select_system_prompt(support_type, subject)),
            turn("model", PRIMING_ACKNOWLEDGEMENT),
        ]

        for previous in (history or [])[-HISTORY_WINDOW:]:
            contents.append(turn(to_gemini_role(previous.get("role")), previous.get("content", "")))

        contents.append(turn("user", message))
        return contents

    @staticmethod
    def extract_text(data: Dict) -> str:
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            text = None
        return text or FALLBACK_RESPONSE

    def get_completion(self, contents: List[Dict]) -> str:
        body = {
            "contents": contents,
            "generationConfig": GENERATION_CONFIG,
        }
        try:
            response = self.http.post(
                self.generate_endpoint,
                params={"key": self.api_key},
                json=body,
                headers={"Content-Type": "application/json"},
            )
        except requests.exceptions.RequestException as exc:
            self.metrics.incr("errors.generate_response")
            raise UpstreamError(f"Gemini API request failed: {exc}") from exc

        if not response.ok:
            self.metrics.incr("errors.generate_response")
            logger.warning("Gemini API returned status %s", response.status_code)
            raise UpstreamError(f"Gemini API error: {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            self.metrics.incr("errors.generate_response")
            raise UpstreamError("Gemini API returned a non-JSON body") from exc

        self.metrics.incr("success.generate_response")
        return self.extract_text(data)

    def chat_completion(
        self,
        message: str,
        support_type: Optional[SupportType],
        subject: Optional[str] = None,
        history: Optional[List[Dict]] = None,
    ) -> str:
        contents = self.build_transcript(message, support_type, subject, history)
        logger.info(
            "Generating reply: support_type=%s history_turns=%s",
            support_type.value if support_type else "unknown",
            len(contents) - 3,
        )
        return self.get_completion(contents)
