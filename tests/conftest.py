"""Pytest configuration.

We keep the application code under the top-level `src/` package.
Depending on how pytest is invoked and the active import mode, the repository
root may not be on `sys.path`, which breaks imports like `from src.modules...`.

This file adds the repo root to `sys.path` during test collection and
provides the sample messages shared by the test modules.
"""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]

# NOTE: Insert at the front so local imports win over any similarly named
# third-party packages.
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


FIXED_NOW = datetime(2024, 3, 5, 12, 0, 0, tzinfo=timezone.utc)

PHISHING_EML = (
    "Return-Path: <bad@evil.com>\r\n"
    "Subject: Win $$$\r\n"
    "From: Attacker <bad@evil.com>\r\n"
    "To: Victim <victim@example.com>\r\n"
    "Date: Tue, 05 Mar 2024 10:15:30 +0000\r\n"
    "Message-ID: <abc123@evil.com>\r\n"
    "X-Mailer: EvilMailer 1.0\r\n"
    "MIME-Version: 1.0\r\n"
    "Content-Type: multipart/mixed; boundary=\"XYZ\"\r\n"
    "\r\n"
    "--XYZ\r\n"
    "Content-Type: text/plain\r\n"
    "\r\n"
    "Click here to claim your prize.\r\n"
    "--XYZ\r\n"
    "Content-Type: application/pdf; name=\"invoice.pdf\"\r\n"
    "Content-Disposition: attachment; filename=\"invoice.pdf\"\r\n"
    "Content-Transfer-Encoding: base64\r\n"
    "\r\n"
    "JVBERi0xLjQK\r\n"
    "--XYZ--\r\n"
)


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def phishing_eml() -> str:
    return PHISHING_EML
