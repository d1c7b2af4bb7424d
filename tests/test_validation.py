"""Tests for prompt, upload and credential validation"""

from jewelshot.services.validation import (
    MAX_PROMPT_LENGTH,
    sanitize_prompt,
    validate_email,
    validate_file_upload,
    validate_negative_prompt,
    validate_password,
    validate_prompt,
    validate_signup_password,
)


class TestValidatePrompt:
    def test_accepts_normal_prompt(self):
        assert validate_prompt("gold ring on a marble table").valid

    def test_rejects_empty(self):
        result = validate_prompt("")
        assert not result.valid
        assert result.error == "Prompt is required"

    def test_rejects_short_after_trim(self):
        result = validate_prompt("  ab  ")
        assert result.error == "Prompt must be at least 3 characters"

    def test_rejects_too_long(self):
        result = validate_prompt("a" * (MAX_PROMPT_LENGTH + 1))
        assert result.error == "Prompt too long. Maximum 2000 characters allowed"

    def test_rejects_script_tag(self):
        result = validate_prompt("ring <script>alert(1)</script>")
        assert result.error == "Invalid content detected. Please remove special characters or code."

    def test_rejects_sql_keyword(self):
        assert not validate_prompt("ring; DROP table images").valid

    def test_rejects_path_traversal(self):
        assert not validate_prompt("load ../../etc/passwd").valid

    def test_rejects_repetition(self):
        result = validate_prompt(" ".join(["ring"] * 21))
        assert result.error == "Prompt contains too much repetition. Please provide varied description."

    def test_twenty_words_skip_repetition_check(self):
        assert validate_prompt(" ".join(["ring"] * 20)).valid


class TestValidateNegativePrompt:
    def test_empty_is_valid(self):
        assert validate_negative_prompt(None).valid
        assert validate_negative_prompt("").valid

    def test_rejects_too_long(self):
        result = validate_negative_prompt("x" * 1001)
        assert result.error == "Negative prompt too long. Maximum 1000 characters allowed"

    def test_path_traversal_allowed_in_negative(self):
        assert validate_negative_prompt("../blurry").valid

    def test_rejects_code(self):
        result = validate_negative_prompt("eval(bad)")
        assert result.error == "Invalid content detected in negative prompt."


def test_sanitize_prompt_strips_markup():
    assert sanitize_prompt("  <b>ring</b> onclick=x javascript:go ") == "bring/b x go"


class TestValidateFileUpload:
    def test_accepts_png(self):
        assert validate_file_upload("ring.png", "image/png", 1024).valid

    def test_jpeg_accepts_both_extensions(self):
        assert validate_file_upload("ring.jpeg", "image/jpeg", 10).valid
        assert validate_file_upload("ring.JPG", "image/jpeg", 10).valid

    def test_rejects_missing_file(self):
        assert validate_file_upload(None, "image/png", 0).error == "No file provided"

    def test_rejects_large_file(self):
        result = validate_file_upload("ring.png", "image/png", 11 * 1024 * 1024)
        assert result.error == "File too large (11.00MB). Maximum size is 10MB"

    def test_rejects_gif(self):
        result = validate_file_upload("ring.gif", "image/gif", 10)
        assert result.error == "Invalid file type: image/gif. Only JPEG, PNG, and WebP are allowed"

    def test_rejects_mismatched_extension(self):
        result = validate_file_upload("ring.png", "image/jpeg", 10)
        assert result.error == "File extension does not match file type"


class TestCredentials:
    def test_email(self):
        assert validate_email("a@b.co").valid
        assert validate_email("").error == "Email is required"
        assert validate_email("not-an-email").error == "Invalid email format"
        assert validate_email("a@b.co\n").error == "Invalid email format"
        assert validate_email("a" * 250 + "@b.co").error == "Email too long"

    def test_password_change_rule(self):
        assert validate_password("abcdefg1").valid
        assert validate_password("short1").error == "Password must be at least 8 characters"
        assert validate_password("x" * 129 + "1").error == "Password too long (max 128 characters)"
        assert validate_password("abcdefgh").error == "Password must contain at least one letter and one number"

    def test_signup_rule_needs_mixed_case(self):
        assert validate_signup_password("Abcdefg1").valid
        assert validate_signup_password("abcdefg1").error == "Password must contain at least one uppercase letter"
        assert validate_signup_password("ABCDEFG1").error == "Password must contain at least one lowercase letter"
        assert validate_signup_password("Abcdefgh").error == "Password must contain at least one number"
