"""Tests for password strength rules."""

from __future__ import annotations

from cmdbctl.domain.passwords import password_problems


class TestPasswordProblems:
    def test_strong_password_passes(self) -> None:
        assert password_problems("S3cret!pass") == []

    def test_too_short(self) -> None:
        problems = password_problems("S3c!t")
        assert problems == ["Password must be at least 8 characters long"]

    def test_custom_min_length(self) -> None:
        assert password_problems("S3cret!pass", min_length=20) == [
            "Password must be at least 20 characters long"
        ]

    def test_reports_every_broken_rule(self) -> None:
        problems = password_problems("abcdefgh")
        assert "Password must contain at least one uppercase letter" in problems
        assert "Password must contain at least one digit" in problems
        assert "Password must contain at least one special character" in problems
        assert "Password must contain at least one lowercase letter" not in problems

    def test_missing_lowercase(self) -> None:
        assert password_problems("S3CRET!PASS") == [
            "Password must contain at least one lowercase letter"
        ]

    def test_non_ascii_digit_does_not_count(self) -> None:
        problems = password_problems("Secret!pass٣")
        assert "Password must contain at least one digit" in problems
