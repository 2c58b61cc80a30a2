"""
Tests for src/modules/header_parser.py

SECURITY STORY: The header block parser reads attacker-controlled text. It
must never raise, and it must only look at the header block so a forged
"Subject:" line in the body cannot replace the real one.
"""

from src.modules.header_parser import HeaderBlockParser, RawHeaders, split_header_block


def test_extracts_all_named_headers(phishing_eml):
    headers = HeaderBlockParser().parse(phishing_eml)

    assert headers.subject == "Win $$$"
    assert headers.sender == "Attacker <bad@evil.com>"
    assert headers.recipient == "Victim <victim@example.com>"
    assert headers.date == "Tue, 05 Mar 2024 10:15:30 +0000"
    assert headers.message_id == "<abc123@evil.com>"
    assert headers.user_agent == "EvilMailer 1.0"
    assert headers.reply_to is None


def test_header_names_are_case_insensitive():
    raw = "SUBJECT: shouting\nfrom: quiet@example.com\nreply-to: other@example.com\n\nbody"
    headers = HeaderBlockParser().parse(raw)

    assert headers.subject == "shouting"
    assert headers.sender == "quiet@example.com"
    assert headers.reply_to == "other@example.com"


def test_reply_to_does_not_satisfy_to():
    raw = "Reply-To: replies@evil.com\nSubject: hi\n\nbody"
    headers = HeaderBlockParser().parse(raw)

    assert headers.recipient is None
    assert headers.reply_to == "replies@evil.com"


def test_body_headers_are_ignored():
    raw = "From: real@example.com\r\n\r\nSubject: forged in body\r\nTo: nobody@example.com\r\n"
    headers = HeaderBlockParser().parse(raw)

    assert headers.sender == "real@example.com"
    assert headers.subject is None
    assert headers.recipient is None


def test_first_occurrence_wins():
    raw = "Subject: first\nSubject: second\n\n"
    assert HeaderBlockParser().parse(raw).subject == "first"


def test_user_agent_preferred_over_x_mailer():
    raw = "X-Mailer: Outlook 16\nUser-Agent: Thunderbird 115\n\n"
    assert HeaderBlockParser().parse(raw).user_agent == "Thunderbird 115"


def test_x_mailer_used_when_user_agent_absent():
    raw = "X-Mailer: Outlook 16\n\n"
    assert HeaderBlockParser().parse(raw).user_agent == "Outlook 16"


def test_values_are_trimmed_and_stay_on_their_line():
    raw = "Subject:    padded   \r\nFrom:\r\nTo: x@example.com\r\n\r\n"
    headers = HeaderBlockParser().parse(raw)

    assert headers.subject == "padded"
    assert headers.sender == ""
    assert headers.recipient == "x@example.com"


def test_empty_and_headerless_input_yields_absent_values():
    parser = HeaderBlockParser()

    assert parser.parse("") == RawHeaders()
    assert parser.parse("just some text without headers") == RawHeaders()


def test_split_header_block_tolerates_mixed_line_endings():
    assert split_header_block("A: 1\r\nB: 2\n\r\nbody") == "A: 1\r\nB: 2"
    assert split_header_block("A: 1\n\nbody\n\nmore") == "A: 1"
    assert split_header_block("A: 1") == "A: 1"
