import json

import pytest

from data.blob_store import InMemoryBlobStore
from data.prompt_repository import PromptRepository
from models.errors import (
    ErrorCode,
    PromptNotFoundError,
    PromptValidationError,
    StorageReadError,
    StorageWriteError,
)
from models.prompt import CreatePromptInput, UpdatePromptInput


def _stored(store, key="prompts"):
    return json.loads(store.get_item(key))


# ---------------- create / get / list ----------------

def test_create_and_get_round_trip(repo):
    created = repo.create({"title": "Test Prompt", "body": "Test Body", "tags": ["test", "sample"]})
    assert created.id
    assert created.title == "Test Prompt"
    assert created.body == "Test Body"
    assert created.tags == ["test", "sample"]
    assert created.created_at == created.updated_at
    assert created.last_used_at is None

    assert repo.get(created.id) == created
    assert repo.list_prompts() == [created]


def test_create_accepts_input_model(repo):
    created = repo.create(CreatePromptInput(title="t", body="b"))
    assert repo.get(created.id) == created


def test_create_trims_title_and_body(repo):
    created = repo.create({"title": "  Title  ", "body": "\n Body \n"})
    assert created.title == "Title"
    assert created.body == "Body"


def test_create_assigns_unique_ids(repo):
    ids = {repo.create({"title": f"t{i}", "body": "b"}).id for i in range(20)}
    assert len(ids) == 20


def test_create_timestamps_are_iso_utc(repo, clock):
    created = repo.create({"title": "t", "body": "b"})
    assert created.created_at == "2026-01-01T12:00:00.000Z"


@pytest.mark.parametrize("tags", [None, [], ["   "], ["", " "]])
def test_empty_tags_are_stored_absent(repo, store, tags):
    created = repo.create({"title": "t", "body": "b", "tags": tags})
    assert created.tags is None
    assert "tags" not in _stored(store)[0]


def test_tags_keep_case_and_duplicates(repo):
    created = repo.create({"title": "t", "body": "b", "tags": [" AI ", "ai", "Draft"]})
    assert created.tags == ["AI", "ai", "Draft"]


@pytest.mark.parametrize(
    "data",
    [
        {"title": "   ", "body": "x"},
        {"title": "", "body": "x"},
        {"title": "x", "body": "  \n "},
        {"title": "x", "body": "{cursor} and {cursor}"},
        {"title": 1, "body": "x"},
        {"title": "x"},
        {"title": "x", "body": "y", "tags": "not-a-list"},
    ],
)
def test_create_validation_failures(repo, store, data):
    with pytest.raises(PromptValidationError) as exc:
        repo.create(data)
    assert exc.value.code is ErrorCode.VALIDATION_FAILED
    assert store.get_item("prompts") is None


def test_get_unknown_id_is_none(repo):
    repo.create({"title": "t", "body": "b"})
    assert repo.get("nope") is None


def test_list_sorted_by_updated_desc(repo, clock):
    a = repo.create({"title": "a", "body": "b"})
    clock.advance()
    b = repo.create({"title": "b", "body": "b"})
    clock.advance()
    c = repo.create({"title": "c", "body": "b"})
    assert [p.id for p in repo.list_prompts()] == [c.id, b.id, a.id]

    clock.advance()
    repo.update(a.id, {"body": "touched"})
    assert [p.id for p in repo.list_prompts()] == [a.id, c.id, b.id]


def test_sort_invariant_over_many_operations(repo, clock):
    ids = []
    for i in range(10):
        clock.advance()
        ids.append(repo.create({"title": f"t{i}", "body": "b"}).id)
    for i in (3, 7, 0, 5):
        clock.advance()
        repo.update(ids[i], {"title": f"renamed {i}"})

    listed = repo.list_prompts()
    stamps = [p.updated_at for p in listed]
    assert stamps == sorted(stamps, reverse=True)
    assert [p.id for p in listed[:4]] == [ids[5], ids[0], ids[7], ids[3]]


def test_sort_uses_time_not_string_order(store, clock):
    store.set_item("prompts", json.dumps([
        {"id": "ten-utc", "title": "t", "body": "b", "createdAt": "2026-01-01T10:00:00Z", "updatedAt": "2026-01-01T10:00:00Z"},
        {"id": "nine-utc", "title": "t", "body": "b", "createdAt": "2026-01-01T10:00:00Z", "updatedAt": "2026-01-01T11:00:00+02:00"},
        {"id": "half-eleven-utc", "title": "t", "body": "b", "createdAt": "2026-01-01T10:00:00Z", "updatedAt": "2026-01-01T09:30:00.000-02:00"},
    ]))
    repo = PromptRepository(store, clock=clock)
    assert [p.id for p in repo.list_prompts()] == ["half-eleven-utc", "ten-utc", "nine-utc"]


# ---------------- update ----------------

def test_update_applies_only_given_fields(repo, clock):
    created = repo.create({"title": "t", "body": "b", "tags": ["x"]})
    clock.advance(60)
    updated = repo.update(created.id, {"title": "  new title "})
    assert updated.title == "new title"
    assert updated.body == "b"
    assert updated.tags == ["x"]
    assert updated.created_at == created.created_at
    assert updated.updated_at == "2026-01-01T12:01:00.000Z"
    assert repo.get(created.id) == updated


def test_update_accepts_input_model(repo):
    created = repo.create({"title": "t", "body": "b"})
    updated = repo.update(created.id, UpdatePromptInput(body="new"))
    assert updated.body == "new"


def test_update_with_empty_tags_removes_them(repo, store):
    created = repo.create({"title": "t", "body": "b", "tags": ["x"]})
    updated = repo.update(created.id, {"tags": []})
    assert updated.tags is None
    assert "tags" not in _stored(store)[0]


def test_update_unknown_id(repo):
    with pytest.raises(PromptNotFoundError) as exc:
        repo.update("missing", {"title": "x"})
    assert exc.value.code is ErrorCode.PROMPT_NOT_FOUND


def test_metadata_update_keeps_stored_body_with_two_cursors(store, clock):
    store.set_item("prompts", json.dumps([
        {"id": "a", "title": "t", "body": "A {cursor} B {cursor}",
         "createdAt": "2026-01-01T10:00:00.000Z", "updatedAt": "2026-01-01T10:00:00.000Z"},
    ]))
    repo = PromptRepository(store, clock=clock)
    updated = repo.update("a", {"tags": ["x"]})
    assert updated.tags == ["x"]
    assert updated.body == "A {cursor} B {cursor}"
    assert repo.update("a", {"title": "renamed"}).title == "renamed"

    with pytest.raises(PromptValidationError):
        repo.update("a", {"body": "{cursor} again {cursor}"})


@pytest.mark.parametrize("patch", [{"title": "   "}, {"body": ""}, {"body": "{cursor}{cursor}"}])
def test_failed_update_leaves_storage_unchanged(repo, store, clock, patch):
    created = repo.create({"title": "t", "body": "b"})
    before = store.get_item("prompts")
    clock.advance()
    with pytest.raises(PromptValidationError):
        repo.update(created.id, patch)
    assert store.get_item("prompts") == before
    assert repo.get(created.id) == created


# ---------------- delete / mark_used / clear / count ----------------

def test_delete(repo):
    a = repo.create({"title": "a", "body": "b"})
    b = repo.create({"title": "b", "body": "b"})
    repo.delete(a.id)
    assert repo.get(a.id) is None
    assert [p.id for p in repo.list_prompts()] == [b.id]
    assert repo.count() == 1


def test_delete_unknown_id(repo):
    repo.create({"title": "a", "body": "b"})
    with pytest.raises(PromptNotFoundError):
        repo.delete("missing")
    assert repo.count() == 1


def test_not_found_is_a_key_error(repo):
    with pytest.raises(KeyError):
        repo.delete("missing")


def test_mark_used_only_touches_last_used(repo, clock):
    created = repo.create({"title": "t", "body": "b", "tags": ["x"]})
    clock.advance(5)
    used = repo.mark_used(created.id)
    assert used.last_used_at == "2026-01-01T12:00:05.000Z"
    assert used.updated_at == created.updated_at
    assert used.model_copy(update={"last_used_at": None}) == created
    assert repo.get(created.id).last_used_at == used.last_used_at

    clock.advance(5)
    again = repo.mark_used(created.id)
    assert again.last_used_at == "2026-01-01T12:00:10.000Z"


def test_mark_used_does_not_reorder(repo, clock):
    a = repo.create({"title": "a", "body": "b"})
    clock.advance()
    b = repo.create({"title": "b", "body": "b"})
    clock.advance()
    repo.mark_used(a.id)
    assert [p.id for p in repo.list_prompts()] == [b.id, a.id]


def test_mark_used_unknown_id(repo):
    with pytest.raises(PromptNotFoundError):
        repo.mark_used("missing")


def test_clear_removes_key(repo, store):
    repo.create({"title": "a", "body": "b"})
    repo.clear()
    assert store.get_item("prompts") is None
    assert repo.list_prompts() == []
    assert repo.count() == 0


def test_custom_key(store, clock):
    repo = PromptRepository(store, key="work", clock=clock)
    repo.create({"title": "a", "body": "b"})
    assert store.get_item("prompts") is None
    assert len(_stored(store, "work")) == 1


# ---------------- search ----------------

@pytest.fixture
def seeded(repo, clock):
    review = repo.create({"title": "Code Review", "body": "Review this: {clipboard}", "tags": ["Dev", "review"]})
    clock.advance()
    mail = repo.create({"title": "Mail reply", "body": "Hi,\n{cursor}\nBest", "tags": ["email"]})
    clock.advance()
    plain = repo.create({"title": "Translate", "body": "Translate to German"})
    return review, mail, plain


def test_find_by_tag_is_case_insensitive_exact(repo, seeded):
    review, mail, plain = seeded
    assert repo.find_by_tag("dev") == [review]
    assert repo.find_by_tag("EMAIL") == [mail]
    assert repo.find_by_tag("de") == []
    assert repo.find_by_tag("german") == []


def test_search_title_body_and_tags(repo, seeded):
    review, mail, plain = seeded
    assert repo.search("review") == [review]
    assert repo.search("GERMAN") == [plain]
    assert repo.search("emai") == [mail]
    assert repo.search("{cursor}") == [mail]
    assert repo.search("nothing matches") == []


def test_search_keeps_surrounding_spaces(repo, clock):
    hello = repo.create({"title": "HelloWorld", "body": "b"})
    assert repo.search(" world") == []
    assert repo.search("WORLD") == [hello]
    spaced = repo.create({"title": "Hello world", "body": "b"})
    assert repo.search(" world") == [spaced]


@pytest.mark.parametrize("query", ["", "   "])
def test_empty_search_matches_everything(repo, seeded, query):
    assert repo.search(query) == repo.list_prompts()
    assert len(repo.search(query)) == 3


def test_search_results_are_sorted(repo, seeded, clock):
    review, mail, plain = seeded
    clock.advance()
    repo.update(review.id, {"body": "Review again"})
    assert [p.id for p in repo.search("r")] == [review.id, plain.id, mail.id]


def test_all_tags(repo, seeded):
    repo.create({"title": "x", "body": "y", "tags": ["dev", "Zeta"]})
    assert repo.all_tags() == ["Dev", "email", "review", "Zeta"]


# ---------------- load & sanitize ----------------

def _record(**overrides):
    rec = {
        "id": "1",
        "title": "Good",
        "body": "Body",
        "createdAt": "2026-01-01T00:00:00.000Z",
        "updatedAt": "2026-01-01T00:00:00.000Z",
    }
    rec.update(overrides)
    return rec


def test_missing_blob_is_empty(repo):
    assert repo.list_prompts() == []
    assert repo.count() == 0


@pytest.mark.parametrize("blob", ["", "   "])
def test_empty_blob_is_empty(store, clock, blob):
    store.set_item("prompts", blob)
    assert PromptRepository(store, clock=clock).list_prompts() == []


def test_partial_corruption_keeps_good_records(store, clock):
    bad = _record(id="2")
    del bad["title"]
    store.set_item("prompts", json.dumps([_record(), bad]))
    prompts = PromptRepository(store, clock=clock).list_prompts()
    assert [p.id for p in prompts] == ["1"]


@pytest.mark.parametrize(
    "bad",
    [
        None,
        "a string",
        42,
        [],
        {"title": "t", "body": "b"},
        {"id": 7, "title": "t", "body": "b"},
        {"id": "2", "title": None, "body": "b"},
        {"id": "2", "title": "t", "body": ["b"]},
    ],
)
def test_structurally_invalid_records_are_dropped(store, clock, bad):
    store.set_item("prompts", json.dumps([bad, _record()]))
    assert [p.id for p in PromptRepository(store, clock=clock).list_prompts()] == ["1"]


def test_duplicate_ids_keep_first(store, clock):
    store.set_item("prompts", json.dumps([_record(title="first"), _record(title="second")]))
    prompts = PromptRepository(store, clock=clock).list_prompts()
    assert [p.title for p in prompts] == ["first"]


def test_soft_problems_are_repaired(store, clock):
    store.set_item("prompts", json.dumps([
        _record(id="a", createdAt=None, updatedAt=12345),
        _record(id="b", tags="oops", lastUsedAt=99),
        _record(id="c", tags=["ok", 1, None, "fine"]),
        _record(id="d", tags=[1, 2]),
        _record(id="e", updatedAt="yesterday"),
    ]))
    repo = PromptRepository(store, clock=clock)
    by_id = {p.id: p for p in repo.list_prompts()}
    now = "2026-01-01T12:00:00.000Z"

    assert by_id["a"].created_at == now and by_id["a"].updated_at == now
    assert by_id["b"].tags is None and by_id["b"].last_used_at is None
    assert by_id["c"].tags == ["ok", "fine"]
    assert by_id["d"].tags is None
    assert by_id["e"].updated_at == now


def test_repaired_records_are_written_back_on_next_mutation(store, clock):
    store.set_item("prompts", json.dumps([_record(tags=[])]))
    repo = PromptRepository(store, clock=clock)
    repo.create({"title": "new", "body": "b"})
    records = _stored(store)
    assert records[0]["id"] == "1"
    assert "tags" not in records[0]


@pytest.mark.parametrize("blob", ["{not json", "[1, 2", "undefined"])
def test_unparsable_blob_raises(store, clock, blob):
    store.set_item("prompts", blob)
    repo = PromptRepository(store, clock=clock)
    with pytest.raises(StorageReadError) as exc:
        repo.list_prompts()
    assert exc.value.code is ErrorCode.STORAGE_READ_FAILED
    with pytest.raises(StorageReadError):
        repo.create({"title": "t", "body": "b"})
    assert store.get_item("prompts") == blob


@pytest.mark.parametrize("blob", ['{"items": []}', '"text"', "42", "null"])
def test_wrong_shape_blob_raises(store, clock, blob):
    store.set_item("prompts", blob)
    with pytest.raises(StorageReadError, match="Invalid data format"):
        PromptRepository(store, clock=clock).list_prompts()


def test_read_failure_is_wrapped(repo, store):
    store.fail_reads = True
    with pytest.raises(StorageReadError) as exc:
        repo.list_prompts()
    assert isinstance(exc.value.cause, OSError)


def test_write_failure_is_wrapped(repo, store):
    created = repo.create({"title": "t", "body": "b"})
    store.fail_writes = True
    with pytest.raises(StorageWriteError):
        repo.create({"title": "t2", "body": "b"})
    with pytest.raises(StorageWriteError):
        repo.update(created.id, {"title": "x"})
    with pytest.raises(StorageWriteError):
        repo.clear()
    store.fail_writes = False
    assert repo.list_prompts() == [created]


def test_persisted_layout(repo, store, clock):
    created = repo.create({"title": "t", "body": "b", "tags": ["x"]})
    clock.advance()
    repo.mark_used(created.id)
    assert _stored(store) == [{
        "id": created.id,
        "title": "t",
        "body": "b",
        "tags": ["x"],
        "createdAt": "2026-01-01T12:00:00.000Z",
        "updatedAt": "2026-01-01T12:00:00.000Z",
        "lastUsedAt": "2026-01-01T12:00:01.000Z",
    }]


# ---------------- observers ----------------

def test_subscribers_receive_sorted_snapshots(repo, clock):
    seen = []
    unsubscribe = repo.subscribe(seen.append)
    a = repo.create({"title": "a", "body": "b"})
    clock.advance()
    b = repo.create({"title": "b", "body": "b"})
    assert [[p.id for p in snap] for snap in seen] == [[a.id], [b.id, a.id]]

    repo.clear()
    assert seen[-1] == []

    unsubscribe()
    repo.create({"title": "c", "body": "b"})
    assert len(seen) == 3


def test_failing_subscriber_does_not_fail_the_write(repo):
    def boom(_):
        raise RuntimeError("listener broke")

    repo.subscribe(boom)
    created = repo.create({"title": "a", "body": "b"})
    assert repo.get(created.id) == created


def test_no_notification_on_failed_write(repo, store):
    seen = []
    repo.subscribe(seen.append)
    store.fail_writes = True
    with pytest.raises(StorageWriteError):
        repo.create({"title": "a", "body": "b"})
    assert seen == []


def test_default_store_is_json_files(tmp_path, monkeypatch):
    monkeypatch.setenv("PROMPT_DATA_DIR", str(tmp_path))
    repo = PromptRepository()
    created = repo.create({"title": "t", "body": "b"})
    assert (tmp_path / "prompts.json").exists()
    assert PromptRepository().get(created.id) == created


def test_in_memory_store_isolated():
    repo = PromptRepository(InMemoryBlobStore())
    repo.create({"title": "t", "body": "b"})
    assert PromptRepository(InMemoryBlobStore()).count() == 0
