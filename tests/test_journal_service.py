from records import AuthenticatedUser, ProfileOnlyUser, Settings, parse_entry_date
from conftest import ADMIN_EMAIL, FakeAI, make_entry
from journal_service import JournalService


def add_user(service, name="Sam", can_edit=True, email=None):
    result = service.add_user({"name": name, "can_edit": can_edit, "email": email})
    assert result.success, result.error
    return result.data["user"]


def add_entry(service, user_id, text="Grateful for a long walk", mood_score=4):
    result = service.add_entry({"text": text, "mood_score": mood_score, "user_id": user_id})
    assert result.success, result.error
    return result.data["entry"]


# ---------- administrator ----------

def test_ensure_admin_is_idempotent(service, store):
    admin = service.ensure_admin()
    assert admin.email == ADMIN_EMAIL
    assert admin.name == "Admin"
    assert len([u for u in store.list_users() if u.email == ADMIN_EMAIL]) == 1


def test_deleting_admin_is_rejected_without_state_change(service, store):
    user = add_user(service)
    add_entry(service, user["id"])
    admin = service.admin_user()
    add_entry(service, admin.id)
    users_before = store.list_users()
    entries_before = store.list_entries()

    result = service.delete_user(admin.id)

    assert not result.success
    assert result.status == 403
    assert result.error == {"form": ["Cannot delete the Admin user."]}
    assert store.list_users() == users_before
    assert store.list_entries() == entries_before


def test_admin_cannot_be_renamed(service):
    admin = service.admin_user()
    result = service.update_user({"id": admin.id, "name": "Root", "can_edit": True})
    assert result.error == {"name": ["Cannot rename the Admin user."]}

    result = service.update_user({"id": admin.id, "name": "Admin", "can_edit": False})
    assert result.success
    assert result.data["user"]["email"] == ADMIN_EMAIL
    assert result.data["user"]["can_edit"] is False


# ---------- users ----------

def test_reserved_name_and_email(service):
    for name in ("admin", "ADMIN", "Admin"):
        result = service.add_user({"name": name, "can_edit": False})
        assert result.error == {"name": ['"Admin" is a reserved name.']}

    result = service.add_user({"name": "Boss", "email": ADMIN_EMAIL.upper()})
    assert result.error == {"email": ["This email is reserved."]}


def test_duplicate_email_rejected(service):
    add_user(service, "Kai", email="kai@example.org")
    result = service.sign_up({"name": "Kai Two", "email": "KAI@example.org"})
    assert result.error == {"email": ["This email is already in use."]}


def test_sign_up_variants(service, store):
    anon = service.sign_up({"name": "Robin"})
    known = service.sign_up({"name": "Alex", "email": "alex@example.org"})

    assert anon.status == 201
    assert isinstance(store.get_user(anon.data["user"]["id"]), ProfileOnlyUser)
    assert isinstance(store.get_user(known.data["user"]["id"]), AuthenticatedUser)
    assert anon.data["user"]["can_edit"] is True
    assert "email" not in anon.data["user"]


def test_update_user(service):
    user = add_user(service, "Sam", can_edit=False)
    result = service.update_user({"id": user["id"], "name": "Samira", "can_edit": True})
    assert result.success
    assert result.data["user"] == {"id": user["id"], "name": "Samira", "can_edit": True}

    missing = service.update_user({"id": 999, "name": "Nobody"})
    assert missing.status == 404


def test_delete_user_cascades_entries(service, store):
    keep = add_user(service, "Keep")
    drop = add_user(service, "Drop")
    add_entry(service, keep["id"])
    add_entry(service, drop["id"])
    add_entry(service, drop["id"])

    result = service.delete_user(drop["id"])

    assert result.success
    assert store.get_user(drop["id"]) is None
    assert {e.user_id for e in store.list_entries()} == {keep["id"]}
    assert service.delete_user(drop["id"]).status == 404


# ---------- entries ----------

def test_add_entry_assigns_id_date_and_prompt(service):
    user = add_user(service)
    entry = add_entry(service, user["id"])

    assert len(entry["id"]) == 32
    assert parse_entry_date(entry["date"]).tzinfo is not None
    assert entry["prompt"] == Settings().gratitude_prompt
    assert service.get_entries(user["id"])[0].id == entry["id"]


def test_add_entry_validation(service, store):
    user = add_user(service)
    short = service.add_entry({"text": "123456789", "mood_score": 3, "user_id": user["id"]})
    assert short.status == 400
    assert "text" in short.error

    ok = service.add_entry({"text": "1234567890", "mood_score": 3, "user_id": user["id"]})
    assert ok.success
    assert len(store.list_entries()) == 1


def test_add_entry_for_unknown_user(service, store):
    result = service.add_entry({"text": "A lovely quiet morning", "mood_score": 3, "user_id": 404})
    assert result.error == {"user_id": ["User not found."]}
    assert store.list_entries() == []


def test_update_entry_changes_text_and_mood_only(service):
    user = add_user(service)
    entry = add_entry(service, user["id"], mood_score=2)

    result = service.update_entry({
        "id": entry["id"],
        "user_id": user["id"],
        "text": "Actually the day turned out well",
        "mood_score": 5,
    })

    assert result.success
    updated = result.data["entry"]
    assert updated["mood_score"] == 5
    assert updated["text"] == "Actually the day turned out well"
    assert updated["date"] == entry["date"]
    assert updated["prompt"] == entry["prompt"]


def test_update_entry_permissions(service):
    owner = add_user(service, "Owner", can_edit=True)
    locked = add_user(service, "Locked", can_edit=False)
    entry = add_entry(service, owner["id"])
    locked_entry = add_entry(service, locked["id"])
    payload = {"text": "Someone else's words", "mood_score": 1}

    other = service.update_entry({**payload, "id": entry["id"], "user_id": locked["id"]})
    assert other.status == 403

    no_flag = service.update_entry({**payload, "id": locked_entry["id"], "user_id": locked["id"]})
    assert no_flag.status == 403

    missing = service.update_entry({**payload, "id": "nope", "user_id": owner["id"]})
    assert missing.error == {"form": ["Entry not found."]}


def test_weekly_archive(store):
    service = JournalService(store, admin_email=ADMIN_EMAIL, ai=FakeAI())
    user = store.create_user("Sam")
    for entry in [
        make_entry("a", "2024-06-10T09:00:00+00:00", user_id=user.id),
        make_entry("b", "2024-06-11T09:00:00+00:00", user_id=user.id),
        make_entry("c", "2024-06-20T09:00:00+00:00", user_id=user.id),
        make_entry("x", "2024-06-20T09:00:00+00:00", user_id=99),
    ]:
        store.save_entry(entry)

    archive = service.weekly_archive(user.id)

    assert [w["week_start"] for w in archive["weeks"]] == ["2024-06-17", "2024-06-10"]
    assert [e["id"] for e in archive["weeks"][1]["entries"]] == ["b", "a"]


def test_admin_overview_excludes_admin_entries(service, store):
    admin = service.admin_user()
    user = add_user(service)
    add_entry(service, admin.id, mood_score=1)
    add_entry(service, user["id"], mood_score=5)

    overview = service.admin_mood_overview()
    counts = {r["name"]: r["count"] for r in overview["moods"]}
    assert counts["Awesome"] == 1
    assert counts["Awful"] == 0

    stacked = service.admin_mood_overview(per_user=True)
    assert stacked["users"] == [{"id": user["id"], "name": "Sam"}]


def test_mood_overview_for_user(service):
    user = add_user(service)
    assert service.mood_overview(user["id"])["has_entries"] is False
    add_entry(service, user["id"], mood_score=3)
    overview = service.mood_overview(user["id"])
    assert overview["has_entries"] is True
    assert sum(r["count"] for r in overview["moods"]) == 1


# ---------- settings ----------

def test_settings_defaults_and_update(service):
    assert service.get_settings() == Settings()

    bad = service.update_settings({"gratitude_prompt": "Hi", "show_explanation": True})
    assert bad.error == {"gratitude_prompt": ["Prompt must be at least 5 characters."]}
    assert service.get_settings() == Settings()

    good = service.update_settings({"gratitude_prompt": "Who helped you today?", "show_explanation": False})
    assert good.data["settings"] == {"gratitude_prompt": "Who helped you today?", "show_explanation": False}
    assert service.get_settings().show_explanation is False


def test_new_entries_use_current_prompt(service):
    user = add_user(service)
    service.update_settings({"gratitude_prompt": "Who helped you today?", "show_explanation": True})
    assert add_entry(service, user["id"])["prompt"] == "Who helped you today?"


# ---------- AI extras ----------

def test_inspiration_passes_past_entries(service, fake_ai):
    user = add_user(service)
    entry = add_entry(service, user["id"], mood_score=2)
    fake_ai.similar = [{"id": entry["id"], "text": entry["text"]}]

    assert service.inspiration(user["id"], 2) == fake_ai.similar
    kind, mood, past = fake_ai.calls[-1]
    assert (kind, mood) == ("similar", 2)
    assert past == [{"id": entry["id"], "mood_score": 2, "text": entry["text"]}]


def test_adjective_cloud(service, fake_ai):
    user = add_user(service)
    add_entry(service, user["id"], text="A calm and sunny afternoon")
    fake_ai.adjectives = [{"adjective": "calm", "count": 4}, {"adjective": "sunny", "count": 1}]

    result = service.adjective_cloud(user["id"], scale="linear")

    assert result["adjectives"] == fake_ai.adjectives
    assert [w["font_size"] for w in result["cloud"]] == [6.0, 1.0]
    assert fake_ai.calls[-1] == ("adjectives", ["A calm and sunny afternoon"])


def test_adjective_cloud_with_no_results(service):
    user = add_user(service)
    assert service.adjective_cloud(user["id"]) == {"adjectives": [], "cloud": []}


def test_daily_prompt(service, fake_ai):
    assert service.daily_prompt() == fake_ai.prompt
