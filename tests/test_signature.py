import base64
import hashlib
import hmac

from sync_service.signature import compute_signature, verify_webhook_signature

SECRET = "whsec_test"
BODY = b'{"name":"#1001","email":"a@b.com"}'


def test_compute_signature_is_base64_hmac_sha256():
    expected = base64.b64encode(hmac.new(SECRET.encode(), BODY, hashlib.sha256).digest()).decode()
    assert compute_signature(BODY, SECRET) == expected


def test_valid_signature_is_accepted():
    assert verify_webhook_signature(BODY, compute_signature(BODY, SECRET), SECRET) is True


def test_signature_over_different_bytes_is_rejected():
    # same JSON document, different whitespace
    reformatted = b'{"name": "#1001", "email": "a@b.com"}'
    assert verify_webhook_signature(reformatted, compute_signature(BODY, SECRET), SECRET) is False


def test_signature_with_wrong_secret_is_rejected():
    assert verify_webhook_signature(BODY, compute_signature(BODY, "other"), SECRET) is False


def test_missing_or_short_signature_is_rejected():
    assert verify_webhook_signature(BODY, None, SECRET) is False
    assert verify_webhook_signature(BODY, "", SECRET) is False
    assert verify_webhook_signature(BODY, "abc", SECRET) is False
