import pytest

from schemas import EntryIn, SettingsIn, SignUpIn, UserIn, validate_payload


def entry(**overrides):
    data = {"text": "x" * 10, "mood_score": 3, "user_id": 1}
    data.update(overrides)
    return data


def test_entry_text_of_nine_characters_is_rejected():
    model, errors = validate_payload(EntryIn, entry(text="x" * 9))
    assert model is None
    assert errors == {"text": ["Your entry must be at least 10 characters long."]}


def test_entry_text_of_ten_characters_is_accepted():
    model, errors = validate_payload(EntryIn, entry(text="x" * 10))
    assert errors is None
    assert model.text == "x" * 10


def test_entry_text_upper_bound():
    assert validate_payload(EntryIn, entry(text="x" * 1000))[1] is None
    _, errors = validate_payload(EntryIn, entry(text="x" * 1001))
    assert list(errors) == ["text"]


@pytest.mark.parametrize("score", [0, 6, -1])
def test_mood_out_of_range(score):
    _, errors = validate_payload(EntryIn, entry(mood_score=score))
    assert errors == {"mood_score": ["Mood score must be between 1 and 5."]}


def test_non_numeric_mood_is_field_error():
    _, errors = validate_payload(EntryIn, entry(mood_score="great"))
    assert "mood_score" in errors


@pytest.mark.parametrize("score", [True, "3", 3.0])
def test_mood_must_be_a_real_integer(score):
    model, errors = validate_payload(EntryIn, entry(mood_score=score))
    assert model is None
    assert list(errors) == ["mood_score"]


def test_multiple_field_errors_are_collected():
    _, errors = validate_payload(EntryIn, {"text": "short", "mood_score": 9})
    assert set(errors) == {"text", "mood_score", "user_id"}


def test_non_object_payload():
    _, errors = validate_payload(EntryIn, ["not", "a", "dict"])
    assert errors == {"form": ["Expected a JSON object."]}


def test_user_email_validation():
    _, errors = validate_payload(UserIn, {"name": "Robin", "email": "not-an-email"})
    assert errors == {"email": ["Invalid email address."]}

    model, errors = validate_payload(UserIn, {"name": "Robin", "email": "  "})
    assert errors is None
    assert model.email is None
    assert model.can_edit is False


@pytest.mark.parametrize("email", ["a@b..c", "two@@example.org", "no-domain@", 42])
def test_malformed_emails_are_rejected(email):
    _, errors = validate_payload(SignUpIn, {"name": "Robin", "email": email})
    assert errors == {"email": ["Invalid email address."]}


def test_valid_email_is_kept():
    model, errors = validate_payload(SignUpIn, {"name": "Robin", "email": " robin@example.org "})
    assert errors is None
    assert model.email == "robin@example.org"


def test_user_name_too_short():
    _, errors = validate_payload(SignUpIn, {"name": " R "})
    assert errors == {"name": ["Name must be at least 2 characters long."]}


def test_settings_prompt_minimum():
    _, errors = validate_payload(SettingsIn, {"gratitude_prompt": "Why", "show_explanation": True})
    assert errors == {"gratitude_prompt": ["Prompt must be at least 5 characters."]}

    model, errors = validate_payload(
        SettingsIn, {"gratitude_prompt": "Who helped you?", "show_explanation": False}
    )
    assert errors is None
    assert model.show_explanation is False
