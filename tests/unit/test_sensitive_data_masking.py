import pytest

pytestmark = pytest.mark.unit


class TestSensitiveDataMasking:
    def test_rut_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "rut": "12.345.678-5"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "12.345.678-5" not in result["rut"]
        assert "***MASKED***" in result["rut"]

    def test_rut_with_k_verifier_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "rut": "9876543-K"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "***MASKED***" in result["rut"]

    def test_email_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "contact": "compras@norte.example"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "compras@norte.example" not in result["contact"]
        assert "***MASKED***" in result["contact"]

    def test_password_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "data": "password='s3cret123'"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "s3cret123" not in result["data"]
        assert "***MASKED***" in result["data"]

    def test_token_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "header": "token=abc123xyz"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "abc123xyz" not in result["header"]
        assert "***MASKED***" in result["header"]

    def test_tracking_code_unchanged(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "order.created", "tracking_code": "PD-857933-2025-44"}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["tracking_code"] == "PD-857933-2025-44"
        assert result["event"] == "order.created"
