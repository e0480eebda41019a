import argparse
import logging
import os
import random
from pathlib import Path
from typing import List, Optional

import requests

from models import ChatMessage, PresentationData, SimulatedStep
from session_store import CHAT_HISTORY_KEY, SLIDE_DATA_KEY, STEPS_MAP_KEY, USER_NAME_KEY, SessionStore

logger = logging.getLogger(__name__)

DECK_SERVICE_URL = os.getenv("DECK_SERVICE_URL", "http://localhost:8000")
UPDATED_MESSAGE = "Slides have been updated!"
FALLBACK_EXPORT_TITLE = "AI Presentation"

SIMULATED_ACTIONS = [
    "Searching the web",
    "Reading website",
    "Analyzing context",
    "Synthesizing ideas",
    "Identifying examples",
    "Drafting outline",
    "Formatting structure",
    "Selecting visuals",
    "Refining details",
]


def generate_simulated_steps(content: str, rng: Optional[random.Random] = None) -> List[SimulatedStep]:
    """Picks one to three distinct progress actions to show beside a reply."""
    rng = rng or random.Random()
    count = rng.randint(1, 3)
    steps = []
    for action in rng.sample(SIMULATED_ACTIONS, count):
        if action == "Searching the web":
            subtitle = f'"{content[:40]}..."'
        elif action == "Reading website":
            subtitle = "https://example.com/..."
        else:
            subtitle = "Processing..."
        steps.append(SimulatedStep(title=action, subtitle=subtitle))
    return steps


class DeckChatSession:
    """
    Drives the generate/export endpoints and keeps the chat state in a SessionStore.

    State is loaded once from the store and written back after each request settles.
    """

    def __init__(self, store: SessionStore, base_url: str = DECK_SERVICE_URL, http=None, timeout: float = 300):
        self.store = store
        self.base_url = base_url.rstrip("/")
        self.http = http or requests.Session()
        self.timeout = timeout

        self.user_name: str = store.get(USER_NAME_KEY, "")
        self.chat_history = [ChatMessage.model_validate(m) for m in store.get(CHAT_HISTORY_KEY, [])]
        slide_data = store.get(SLIDE_DATA_KEY)
        self.slide_data = PresentationData.model_validate(slide_data) if slide_data else None
        self.steps_map = {
            key: [SimulatedStep.model_validate(s) for s in steps]
            for key, steps in store.get(STEPS_MAP_KEY, {}).items()
        }

    # --- persistence ---
    def _save_chat(self) -> None:
        self.store.set(CHAT_HISTORY_KEY, [m.model_dump() for m in self.chat_history])

    def _save_slides(self) -> None:
        if self.slide_data is not None:
            self.store.set(SLIDE_DATA_KEY, self.slide_data.model_dump())
        else:
            self.store.delete(SLIDE_DATA_KEY)

    def _save_steps(self) -> None:
        self.store.set(STEPS_MAP_KEY, {k: [s.model_dump() for s in v] for k, v in self.steps_map.items()})

    def _append(self, role: str, content: str) -> None:
        self.chat_history.append(ChatMessage(role=role, content=content))
        self._save_chat()

    def set_user_name(self, name: str) -> None:
        self.user_name = name.strip()
        self.store.set(USER_NAME_KEY, self.user_name)

    # --- requests ---
    def send(self, prompt: str) -> Optional[PresentationData]:
        """Sends a prompt with the current slides; returns the new deck, or None on failure."""
        prompt = (prompt or "").strip()
        if not prompt:
            return None

        self._append("user", prompt)
        payload = {
            "prompt": prompt,
            "currentSlides": self.slide_data.model_dump() if self.slide_data else None,
        }

        try:
            response = self.http.post(f"{self.base_url}/api/generate", json=payload, timeout=self.timeout)
            if not response.ok:
                raise RuntimeError(self._error_message(response))
            data = PresentationData.model_validate(response.json())
        except Exception as e:
            logger.error(f"Generation request failed: {e}")
            self._append("model", f"Error: {str(e) or 'Unknown error'}")
            return None

        new_index = str(len(self.chat_history))
        self.steps_map[new_index] = generate_simulated_steps(UPDATED_MESSAGE)
        self.slide_data = data
        self._save_steps()
        self._save_slides()
        self._append("model", UPDATED_MESSAGE)
        return data

    @staticmethod
    def _error_message(response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("error"):
            return body["error"]
        return f"Generation failed ({response.status_code})"

    def download(self, dest: Path) -> Optional[Path]:
        """Exports the current deck to dest. Failures are logged, never added to the chat."""
        if not self.slide_data or not self.slide_data.slides:
            return None

        payload = {
            "slides": [s.model_dump() for s in self.slide_data.slides],
            "presentationTitle": self.slide_data.slides[0].title or FALLBACK_EXPORT_TITLE,
        }
        try:
            response = self.http.post(f"{self.base_url}/api/download-pptx", json=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"Download failed: {e}")
            return None

        dest = Path(dest)
        dest.write_bytes(response.content)
        logger.info(f"Saved presentation to {dest}")
        return dest

    def new_chat(self) -> None:
        self.chat_history = []
        self.slide_data = None
        self.steps_map = {}
        self._save_chat()
        self._save_slides()
        self._save_steps()


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Chat with the slide deck service.")
    parser.add_argument("prompt", help="Instruction for creating or editing the deck.")
    parser.add_argument("--base-url", default=DECK_SERVICE_URL, help="Deck service base URL.")
    parser.add_argument("--state-file", default=".deck_session.json", help="Where the chat session is kept.")
    parser.add_argument("--download", metavar="PATH", help="Also export the deck to this .pptx path.")
    parser.add_argument("--new", action="store_true", help="Start a new chat before sending the prompt.")
    return parser.parse_args()


if __name__ == "__main__":
    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())
    args = _parse_args()
    session = DeckChatSession(SessionStore(args.state_file), base_url=args.base_url)
    if args.new:
        session.new_chat()
    session.send(args.prompt)
    print(session.chat_history[-1].content)
    if session.slide_data:
        for i, slide in enumerate(session.slide_data.slides, start=1):
            print(f"{i}. {slide.title}")
    if args.download:
        saved = session.download(Path(args.download))
        print(f"Presentation saved: {saved}" if saved else "Download failed.")
