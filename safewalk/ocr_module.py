"""Offline OCR for reading mode."""

from __future__ import annotations

import logging
import os
import re
from shutil import which
from typing import Any, Optional


class TextReader:
    """pytesseract wrapper. read() returns None on failure, "" when no text is found."""

    _MIN_WORD_CONF = 40

    def __init__(self, language: str = "eng") -> None:
        self._logger = logging.getLogger(__name__)
        self._language = language
        self._available = self._check_tesseract()

    @property
    def available(self) -> bool:
        return self._available

    def read(self, frame: Any) -> Optional[str]:
        if frame is None or not self._available:
            return None
        try:
            import cv2
            import pytesseract

            gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
            resized = cv2.resize(gray, None, fx=1.5, fy=1.5, interpolation=cv2.INTER_LINEAR)
            blur = cv2.GaussianBlur(resized, (3, 3), 0)
            _, thresh = cv2.threshold(blur, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
            data = pytesseract.image_to_data(
                thresh,
                lang=self._language,
                config="--psm 6",
                output_type=pytesseract.Output.DICT,
            )
        except Exception as exc:
            self._logger.error("OCR failed: %s", exc)
            return None
        return self._join_confident_words(data)

    def _join_confident_words(self, data: dict) -> str:
        words = []
        for text, conf in zip(data.get("text", []), data.get("conf", [])):
            try:
                conf_value = float(conf)
            except (TypeError, ValueError):
                continue
            cleaned = (text or "").strip()
            if cleaned and conf_value >= self._MIN_WORD_CONF:
                words.append(cleaned)
        return re.sub(r"\s+", " ", " ".join(words)).strip()

    def _check_tesseract(self) -> bool:
        try:
            import pytesseract
        except Exception:
            self._logger.warning("pytesseract not installed; text reading disabled.")
            return False
        env_path = os.environ.get("TESSERACT_CMD")
        if env_path and os.path.exists(env_path):
            pytesseract.pytesseract.tesseract_cmd = env_path
        elif which("tesseract") is None:
            self._logger.warning("tesseract binary not found; text reading disabled.")
            return False
        return True
