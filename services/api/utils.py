"""Shared utilities for API routes."""

from __future__ import annotations

from functools import lru_cache
from typing import Callable

from archive.settings import get_settings
from archive.storage import create_storage
from archive.uploader import Uploader


@lru_cache(maxsize=1)
def _default_uploader() -> Uploader:
    settings = get_settings()
    return Uploader(create_storage(settings), settings.upload)


def get_uploader() -> Uploader:
    """Return the process-wide uploader, building it on first use."""
    return _default_uploader()


def uploader_provider() -> Callable[[], Uploader]:
    """FastAPI dependency handing routes a lazy uploader factory.

    Storage is only configured once a request has passed its form checks.
    """
    return get_uploader


UPLOAD_FORM_HTML = """<!DOCTYPE html>
<html>
  <head>
    <title>Upload File to the exam archive</title>
  </head>
  <body>
    <h1>Upload File to the exam archive</h1>
    <form action="/upload" method="post" enctype="multipart/form-data">
      <label for="study">Study:</label>
      <select id="study" name="study">
        <option value="computer-science">Computer Science</option>
        <option value="applied-mathematics">Applied Mathematics</option>
      </select>
      <label for="year">Academic year:</label>
      <select id="year" name="year">
        <option value="first-year">First Year</option>
        <option value="second-year">Second Year</option>
        <option value="third-year">Third Year</option>
        <option value="master">Master</option>
      </select>
      <label for="code">Study Code:</label>
      <input type="text" id="code" name="code" pattern="[A-Z]{2}[0-9]{4}"
             title="Please enter a code with two capitalized letters followed by four numbers." required>
      <label for="type">Type:</label>
      <select id="type" name="type">
        <option value="exam">Exam</option>
        <option value="midterm">Mid-term</option>
        <option value="resit">Resit</option>
        <option value="summary">Summary</option>
      </select>
      <label for="date">Exam date (optional):</label>
      <input type="date" id="date" name="date">
      <label for="answers">
        <input type="checkbox" id="answers" name="answers">
        Answers
      </label>
      <label for="file">Select a file:</label>
      <input type="file" name="file" id="file" required>
      <br><br>
      <input type="submit" value="Upload">
    </form>
  </body>
</html>
"""


__all__ = ["get_uploader", "uploader_provider", "UPLOAD_FORM_HTML"]
