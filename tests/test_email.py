"""Tests for transactional email rendering and delivery."""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from marketplace.services.email import RESEND_API_URL, EmailService


class TestLinks:
    def test_links_use_app_url(self):
        service = EmailService("", "noreply@example.com", "https://shop.example.com/")
        assert service.password_reset_url("abc") == "https://shop.example.com/auth/reset-password/abc"
        assert service.verification_url("xyz") == "https://shop.example.com/auth/verify-email/xyz"


class TestDelivery:
    def test_without_api_key_logs_link_and_skips(self):
        service = EmailService("", "noreply@example.com", "http://localhost:8000")
        with patch("marketplace.services.email.logger") as mock_logger, patch("httpx.post") as mock_post:
            service.send_password_reset_email("a@x.com", "tok123")

        mock_post.assert_not_called()
        calls = [str(c) for c in mock_logger.info.call_args_list]
        assert any("PASSWORD RESET" in c and "/auth/reset-password/tok123" in c for c in calls)

    def test_with_api_key_posts_rendered_email(self):
        service = EmailService("re_test_key", "noreply@example.com", "http://localhost:8000")
        response = MagicMock()
        with patch("httpx.post", return_value=response) as mock_post:
            service.send_verification_email("a@x.com", "tok456")

        mock_post.assert_called_once()
        args, kwargs = mock_post.call_args
        assert args[0] == RESEND_API_URL
        assert kwargs["headers"]["Authorization"] == "Bearer re_test_key"
        payload = kwargs["json"]
        assert payload["to"] == ["a@x.com"]
        assert payload["from"] == "noreply@example.com"
        assert payload["subject"] == "Verify your email address"
        assert "http://localhost:8000/auth/verify-email/tok456" in payload["html"]
        assert "expire in 24 hours" in payload["html"]
        response.raise_for_status.assert_called_once()

    def test_provider_error_propagates(self):
        service = EmailService("re_test_key", "noreply@example.com", "http://localhost:8000")
        request = httpx.Request("POST", RESEND_API_URL)
        failing = httpx.Response(500, request=request)
        with patch("httpx.post", return_value=failing):
            with pytest.raises(httpx.HTTPStatusError):
                service.send_password_reset_email("a@x.com", "tok789")
