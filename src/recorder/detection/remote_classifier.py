"""
End-of-Run Detection using a Vision Model
Sends a sampled frame to an OpenAI vision model and reads back whether the
run has ended and the final score shown on the ribbon.
"""

import json
import logging
import os
from typing import Dict, Optional

import numpy as np
import openai
from dotenv import load_dotenv
from openai import OpenAI

from ..config import get_remote_model, get_timing_config
from ..errors import ClassificationError, RateLimitedError
from ..models import ClassificationResult, DetectionMode
from ..utils.frame_sampler import encode_png_base64
from .base import FrameClassifier

load_dotenv()

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a referee for a browser-based basketball game. Your job is to "
    "precisely detect when a game run has ended and report the final score."
)

PROMPT = """Analyze this basketball game screenshot.

The END-OF-RUN screen shows:
- A blue ribbon banner near the top with the final score on it
- A green replay button in the middle of the screen

1. Is the game over? Only answer true if the final score ribbon is visible.
   Gameplay, loading screens and menus are NOT game over.
2. What is the final score shown on the ribbon? Use 0 if not visible.

Return ONLY a JSON object with these exact fields:
{
  "isGameOver": true or false,
  "score": integer,
  "confidence": number between 0 and 1
}"""

QUOTA_MARKERS = ('429', 'RESOURCE_EXHAUSTED', 'insufficient_quota', 'rate limit')


class RemoteFrameClassifier(FrameClassifier):
    """
    Classifies frames with an OpenAI vision model.

    Owns no session state; every call is independent.
    """

    mode = DetectionMode.REMOTE

    def __init__(self, model: Optional[str] = None, client: Optional[OpenAI] = None,
                 timeout: Optional[float] = None):
        """
        Initialize remote classifier.

        Args:
            model: OpenAI model identifier (default: REMOTE_MODEL or "gpt-4o")
            client: Preconfigured OpenAI client (default: built from OPENAI_API_KEY)
            timeout: Per-request timeout in seconds (default: one remote tick interval)
        """
        self.model = model or get_remote_model()
        # One request per tick; the session controller owns retries and backoff
        self.client = (client or OpenAI(api_key=os.getenv('OPENAI_API_KEY'))).with_options(max_retries=0)
        if timeout is None:
            timeout = get_timing_config().remote_interval_ms / 1000.0
        self.timeout = timeout

    def classify(self, frame: np.ndarray) -> ClassificationResult:
        try:
            base64_image = encode_png_base64(frame)
        except Exception as e:
            raise ClassificationError(f"Could not encode frame: {e}") from e
        return self.classify_image(base64_image)

    def classify_image(self, base64_image: str) -> ClassificationResult:
        """
        Classify an encoded still image.

        Args:
            base64_image: PNG image as base64, with or without a data URL header

        Returns:
            ClassificationResult with the score filled in when the end screen
            is recognised

        Raises:
            RateLimitedError: If the service rejected the call for quota reasons
            ClassificationError: For any other transport or parse failure
        """
        # Remove header if present (e.g. "data:image/png;base64,")
        if base64_image.startswith('data:'):
            base64_image = base64_image.split(',', 1)[1]

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": PROMPT},
                            {
                                "type": "image_url",
                                "image_url": {
                                    "url": f"data:image/png;base64,{base64_image}",
                                    "detail": "low"
                                }
                            }
                        ]
                    }
                ],
                response_format={"type": "json_object"},
                max_tokens=100,
                timeout=self.timeout
            )
        except openai.RateLimitError as e:
            raise RateLimitedError(str(e)) from e
        except openai.OpenAIError as e:
            if is_quota_error(e):
                raise RateLimitedError(str(e)) from e
            raise ClassificationError(f"Remote classification failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ClassificationError("Empty response from remote classifier")

        result = parse_response(content)
        logger.debug(f"Remote result: game_over={result.is_game_over} score={result.score} "
                     f"confidence={result.confidence:.2f}")
        return result


def is_quota_error(error: Exception) -> bool:
    """True if an API error carries a quota/rate-limit signal."""
    if getattr(error, 'status_code', None) == 429:
        return True
    message = str(error)
    return any(marker.lower() in message.lower() for marker in QUOTA_MARKERS)


def parse_response(content: str) -> ClassificationResult:
    """
    Parse the model's JSON reply into a ClassificationResult.

    Raises:
        ClassificationError: If the reply is not valid JSON of the expected shape
    """
    # Extract JSON
    if "```json" in content:
        content = content.split("```json")[1].split("```")[0].strip()
    elif "```" in content:
        content = content.split("```")[1].split("```")[0].strip()

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ClassificationError(f"Invalid JSON from remote classifier: {e}") from e

    if not isinstance(data, dict):
        raise ClassificationError(f"Expected JSON object, got {type(data).__name__}")

    return _result_from_dict(data)


def _result_from_dict(data: Dict) -> ClassificationResult:
    missing = [key for key in ('isGameOver', 'score', 'confidence') if key not in data]
    if missing:
        raise ClassificationError(f"Response missing fields: {', '.join(missing)}")

    is_game_over = data['isGameOver']
    if not isinstance(is_game_over, bool):
        raise ClassificationError(f"isGameOver must be boolean, got {is_game_over!r}")

    confidence = data['confidence']
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        raise ClassificationError(f"confidence must be a number, got {confidence!r}")
    confidence = min(max(float(confidence), 0.0), 1.0)

    score = data['score']
    if score is not None and (isinstance(score, bool) or not isinstance(score, (int, float))):
        raise ClassificationError(f"score must be an integer, got {score!r}")

    if not is_game_over or score is None or score < 0 or score != int(score):
        score = None
    else:
        score = int(score)

    return ClassificationResult(is_game_over=is_game_over, score=score, confidence=confidence)
