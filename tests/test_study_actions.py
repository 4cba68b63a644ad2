import re

import pytest
from sqlalchemy import event
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from conftest import OTHER_USER_ID, USER_ID
from ebbinglish import database, study_actions
from ebbinglish.models import StudySession
from ebbinglish.rounds.selector import ENCOUNTER_FINISHED_MESSAGE


def _results(**outcomes):
    return [{"word_id": word_id, "outcome": outcome} for word_id, outcome in outcomes.items()]


def _create_round(word_ids, name="Round"):
    result = study_actions.create_round(USER_ID, name, word_ids)
    assert result.ok, result.message
    return result.data["round_id"]


def _start(round_id, session_type="normal", user_id=USER_ID):
    result = study_actions.start_session(user_id, round_id, session_type)
    assert result.ok, result.message
    return result.data


def _finish(session_id, results):
    result = study_actions.finish_session(USER_ID, session_id, results)
    assert result.ok, result.message
    return result.data


# ---- Rounds ----

def test_create_round_collapses_duplicates(make_words, fetch_round):
    a, b = make_words(["apple", "bread"])
    round_id = _create_round([a, b, a], name="  Week 1  ")

    study_round = fetch_round(round_id)
    assert study_round.word_ids == [a, b]
    assert study_round.name == "Week 1"
    assert study_round.status == "active"
    assert study_round.completed_word_ids == []


def test_create_round_rejects_foreign_words(make_words):
    (mine,) = make_words(["apple"])
    (theirs,) = make_words(["bread"], user_id=OTHER_USER_ID)

    result = study_actions.create_round(USER_ID, "Mixed", [mine, theirs])
    assert not result.ok
    assert result.error == "not_found"
    assert result.message == "Some words are invalid"


@pytest.mark.parametrize("name, word_ids", [("", ["x"]), ("Empty", []), ("x" * 121, ["x"])])
def test_create_round_validates_payload(name, word_ids):
    result = study_actions.create_round(USER_ID, name, word_ids)
    assert not result.ok
    assert result.error == "validation"
    assert result.message == "Invalid round payload"


def test_round_of_another_user_is_not_found(make_words):
    (word,) = make_words(["apple"])
    round_id = _create_round([word])

    result = study_actions.start_session(OTHER_USER_ID, round_id, "normal")
    assert not result.ok
    assert result.error == "not_found"
    assert result.message == "Round not found"


# ---- Session selection and finish ----

def test_encounter_then_extra_practice(make_words, fetch_round):
    a, b, c = make_words(["alpha", "bravo", "charlie"])
    assert study_actions.update_study_settings(USER_ID, session_size=2).ok
    round_id = _create_round([a, b, c])

    first = _start(round_id)
    assert first["word_ids"] == [a, b]

    data = _finish(first["session_id"], _results(**{a: "known", b: "unknown"}))
    assert data == {"round_id": round_id, "round_completed": False}

    study_round = fetch_round(round_id)
    assert set(study_round.completed_word_ids) == {a}
    assert set(study_round.attempted_word_ids) == {a, b}
    assert set(study_round.first_try_known_word_ids) == {a}
    assert study_round.status == "active"

    assert _start(round_id, "normal")["word_ids"] == [c]
    assert _start(round_id, "extra")["word_ids"] == [b]


def test_open_session_is_reused(make_words):
    words = make_words(["one", "two"])
    round_id = _create_round(words)

    first = _start(round_id)
    second = _start(round_id)
    assert second["session_id"] == first["session_id"]
    assert second["word_ids"] == first["word_ids"]
    assert second["reused"] is True


def test_normal_session_after_every_word_was_met(make_words):
    (word,) = make_words(["one"])
    round_id = _create_round([word])
    session = _start(round_id)
    _finish(session["session_id"], _results(**{word: "fuzzy"}))

    result = study_actions.start_session(USER_ID, round_id, "normal")
    assert not result.ok
    assert result.error == "empty_pool"
    assert result.message == ENCOUNTER_FINISHED_MESSAGE


def test_finish_writes_logs_and_counters(make_words, fetch_state, count_logs):
    a, b = make_words(["one", "two"])
    round_id = _create_round([a, b])
    session = _start(round_id)
    _finish(session["session_id"], _results(**{a: "fuzzy", b: "unknown"}))

    assert count_logs() == 2
    state_a, state_b = fetch_state(a), fetch_state(b)
    assert (state_a.seen_count, state_a.lapse_count) == (1, 0)
    assert (state_b.seen_count, state_b.lapse_count) == (1, 1)
    assert state_a.due_at is not None


def test_finish_is_idempotent(make_words, fetch_round, fetch_session, count_logs):
    a, b = make_words(["one", "two"])
    round_id = _create_round([a, b])
    session = _start(round_id)
    payload = _results(**{a: "known", b: "unknown"})

    _finish(session["session_id"], payload)
    round_before = fetch_round(round_id)
    session_before = fetch_session(session["session_id"])

    again = _finish(session["session_id"], payload)
    assert again["round_id"] == round_id
    assert count_logs() == 2

    round_after = fetch_round(round_id)
    session_after = fetch_session(session["session_id"])
    assert round_after.completed_word_ids == round_before.completed_word_ids
    assert round_after.attempted_word_ids == round_before.attempted_word_ids
    assert session_after.completed_at == session_before.completed_at
    assert session_after.results == session_before.results


def test_finish_locks_session_and_round_rows(make_words):
    (word,) = make_words(["one"])
    session = _start(_create_round([word]))
    locked_tables = []

    def capture(orm_state):
        if not orm_state.is_select:
            return
        sql = str(orm_state.statement.compile(dialect=postgresql.dialect()))
        if "FOR UPDATE" in sql:
            locked_tables.append(re.search(r"FROM (\w+)", sql).group(1))

    event.listen(Session, "do_orm_execute", capture)
    try:
        _finish(session["session_id"], _results(**{word: "known"}))
    finally:
        event.remove(Session, "do_orm_execute", capture)

    assert locked_tables[:2] == ["study_sessions", "study_rounds"]


def test_finish_keeps_first_answer_per_word(make_words, count_logs, fetch_round):
    (word,) = make_words(["one"])
    round_id = _create_round([word])
    session = _start(round_id)

    payload = [
        {"word_id": word, "outcome": "unknown"},
        {"word_id": word, "outcome": "known"},
    ]
    _finish(session["session_id"], payload)

    assert count_logs(word) == 1
    assert fetch_round(round_id).completed_word_ids == []


def test_finish_rejects_words_outside_session(make_words):
    a, b = make_words(["one", "two"])
    assert study_actions.update_study_settings(USER_ID, session_size=1).ok
    round_id = _create_round([a, b])
    session = _start(round_id)

    result = study_actions.finish_session(USER_ID, session["session_id"], _results(**{b: "known"}))
    assert not result.ok
    assert result.error == "validation"
    assert result.message == "Session result contains invalid word"


def test_extra_session_never_counts_as_first_try(make_words, fetch_round):
    a, b = make_words(["one", "two"])
    round_id = _create_round([a, b])
    normal = _start(round_id)
    _finish(normal["session_id"], _results(**{a: "unknown", b: "unknown"}))

    extra = _start(round_id, "extra")
    _finish(extra["session_id"], _results(**{a: "known"}))

    study_round = fetch_round(round_id)
    assert study_round.completed_word_ids == [a]
    assert study_round.first_try_known_word_ids == []


# ---- Settlement ----

def test_round_completion_settles_ladder(make_words, fetch_round, fetch_state):
    a, b = make_words(["one", "two"])
    round_id = _create_round([a, b])

    normal = _start(round_id)
    _finish(normal["session_id"], _results(**{a: "known", b: "unknown"}))
    assert fetch_state(a).freeze_rounds == 0
    assert fetch_state(a).is_mastered is False

    extra = _start(round_id, "extra")
    data = _finish(extra["session_id"], _results(**{b: "known"}))
    assert data["round_completed"] is True
    assert fetch_round(round_id).status == "completed"

    state_a, state_b = fetch_state(a), fetch_state(b)
    assert (state_a.is_mastered, state_a.mastery_phase, state_a.freeze_rounds) == (True, 3, 3)
    assert (state_b.is_mastered, state_b.freeze_rounds, state_b.consecutive_perfect) == (False, 0, 0)


def test_first_try_known_word_is_mastered_after_one_round(make_words, fetch_state):
    (word,) = make_words(["one"])
    assert study_actions.update_study_settings(USER_ID, freeze_rounds=4).ok

    session = _start(_create_round([word]))
    _finish(session["session_id"], _results(**{word: "known"}))

    state = fetch_state(word)
    assert (state.is_mastered, state.mastery_phase, state.freeze_rounds) == (True, 3, 4)


def test_settlement_counts_down_every_freeze_of_the_user(make_words, fetch_state):
    a, c = make_words(["one", "three"])
    (theirs,) = make_words(["other"], user_id=OTHER_USER_ID)

    first = _start(_create_round([a]))
    _finish(first["session_id"], _results(**{a: "known"}))
    assert fetch_state(a).freeze_rounds == 3

    other_round = study_actions.create_round(OTHER_USER_ID, "Theirs", [theirs]).data["round_id"]
    other_session = _start(other_round, user_id=OTHER_USER_ID)
    study_actions.finish_session(OTHER_USER_ID, other_session["session_id"], _results(**{theirs: "known"}))
    assert fetch_state(a).freeze_rounds == 3

    second = _start(_create_round([c]))
    _finish(second["session_id"], _results(**{c: "known"}))
    assert fetch_state(a).freeze_rounds == 2
    assert fetch_state(a).is_mastered is True
    assert fetch_state(c).freeze_rounds == 3


def test_mastered_word_missed_in_a_later_round_is_reset(make_words, fetch_state):
    (word,) = make_words(["one"])
    assert study_actions.update_study_settings(USER_ID, freeze_rounds=1).ok

    first = _start(_create_round([word]))
    _finish(first["session_id"], _results(**{word: "known"}))
    assert (fetch_state(word).is_mastered, fetch_state(word).freeze_rounds) == (True, 1)

    round_id = _create_round([word])
    second = _start(round_id)
    _finish(second["session_id"], _results(**{word: "unknown"}))
    extra = _start(round_id, "extra")
    _finish(extra["session_id"], _results(**{word: "known"}))

    state = fetch_state(word)
    assert (state.is_mastered, state.mastery_phase, state.freeze_rounds) == (False, 0, 0)


def test_strict_mastery_needs_two_clean_rounds(make_words, fetch_state):
    (word,) = make_words(["one"])
    assert study_actions.update_study_settings(USER_ID, require_consecutive_known=True).ok

    first = _start(_create_round([word]))
    _finish(first["session_id"], _results(**{word: "known"}))
    state = fetch_state(word)
    assert (state.consecutive_perfect, state.is_mastered, state.freeze_rounds) == (1, False, 0)

    second = _start(_create_round([word]))
    _finish(second["session_id"], _results(**{word: "known"}))
    state = fetch_state(word)
    assert (state.is_mastered, state.mastery_phase, state.freeze_rounds) == (True, 3, 3)


def test_strict_mastery_streak_breaks_on_a_miss(make_words, fetch_state):
    (word,) = make_words(["one"])
    assert study_actions.update_study_settings(USER_ID, require_consecutive_known=True).ok

    first = _start(_create_round([word]))
    _finish(first["session_id"], _results(**{word: "known"}))

    round_id = _create_round([word])
    second = _start(round_id)
    _finish(second["session_id"], _results(**{word: "fuzzy"}))
    extra = _start(round_id, "extra")
    _finish(extra["session_id"], _results(**{word: "known"}))

    third = _start(_create_round([word]))
    _finish(third["session_id"], _results(**{word: "known"}))
    state = fetch_state(word)
    assert (state.consecutive_perfect, state.is_mastered) == (1, False)


def test_archived_round_stays_archived(make_words, fetch_round):
    (word,) = make_words(["one"])
    round_id = _create_round([word])
    session = _start(round_id)
    assert study_actions.update_round_status(USER_ID, round_id, "archived").ok

    _finish(session["session_id"], _results(**{word: "known"}))
    assert fetch_round(round_id).status == "archived"


# ---- Progress saves ----

def test_progress_save_accepts_ordered_prefix(make_words, fetch_session):
    a, b, c = make_words(["one", "two", "three"])
    session = _start(_create_round([a, b, c]))

    result = study_actions.save_session_progress(USER_ID, session["session_id"], _results(**{a: "known"}))
    assert result.ok
    assert result.data == {"saved": 1}
    assert fetch_session(session["session_id"]).results[0]["word_id"] == a


def test_progress_save_rejects_out_of_order(make_words):
    a, b = make_words(["one", "two"])
    session = _start(_create_round([a, b]))

    result = study_actions.save_session_progress(USER_ID, session["session_id"], _results(**{b: "known"}))
    assert not result.ok
    assert result.error == "conflict"
    assert result.message == "Session progress is out of order"


def test_progress_save_rejects_payload_longer_than_session(make_words):
    (word,) = make_words(["one"])
    session = _start(_create_round([word]))

    payload = [{"word_id": word, "outcome": "known"}, {"word_id": word, "outcome": "known"}]
    result = study_actions.save_session_progress(USER_ID, session["session_id"], payload)
    assert not result.ok
    assert result.error == "conflict"


def test_progress_save_on_completed_session_saves_nothing(make_words):
    (word,) = make_words(["one"])
    session = _start(_create_round([word]))
    _finish(session["session_id"], _results(**{word: "known"}))

    result = study_actions.save_session_progress(USER_ID, session["session_id"], _results(**{word: "fuzzy"}))
    assert result.ok
    assert result.data == {"saved": 0}


# ---- Manual edits and progress ----

def test_edit_word_to_mastered(make_words, fetch_round, fetch_state, count_logs):
    a, b = make_words(["one", "two"])
    round_id = _create_round([a, b])

    assert study_actions.edit_round_word_status(USER_ID, round_id, a, "first_try_mastered").ok

    study_round = fetch_round(round_id)
    assert study_round.completed_word_ids == [a]
    assert study_round.first_try_known_word_ids == [a]
    assert study_round.attempted_word_ids == [a]
    state = fetch_state(a)
    assert (state.is_mastered, state.mastery_phase, state.seen_count) == (True, 3, 1)
    assert count_logs(a) == 1


def test_edit_word_back_to_unknown(make_words, fetch_round, fetch_state):
    a, b = make_words(["one", "two"])
    round_id = _create_round([a, b])
    study_actions.edit_round_word_status(USER_ID, round_id, a, "mastered")
    study_actions.edit_round_word_status(USER_ID, round_id, b, "mastered")
    assert fetch_round(round_id).status == "completed"

    assert study_actions.edit_round_word_status(USER_ID, round_id, a, "unknown").ok

    study_round = fetch_round(round_id)
    assert study_round.completed_word_ids == [b]
    assert study_round.status == "active"
    state = fetch_state(a)
    assert (state.is_mastered, state.mastery_phase, state.lapse_count) == (False, 0, 1)


def test_edit_word_outside_round(make_words):
    a, b = make_words(["one", "two"])
    round_id = _create_round([a])

    result = study_actions.edit_round_word_status(USER_ID, round_id, b, "mastered")
    assert not result.ok
    assert result.error == "not_found"


def test_round_progress_counts(make_words):
    a, b, c = make_words(["one", "two", "three"])
    round_id = _create_round([a, b, c])
    session = _start(round_id)
    _finish(session["session_id"], _results(**{a: "known", b: "unknown"}))

    progress = study_actions.get_round_progress(USER_ID, round_id).data
    assert progress["total"] == 3
    assert progress["completed"] == 1
    assert progress["attempted"] == 2
    assert progress["first_try_known"] == 1
    assert progress["remaining_to_encounter"] == 1
    assert progress["extra_available"] == 1
    assert progress["is_complete"] is False
    assert progress["status_counts"]["seen"] == 1
    assert progress["status_counts"]["unknown"] == 1
    assert progress["status_counts"]["new"] == 1


def test_delete_round_removes_sessions(make_words):
    (word,) = make_words(["one"])
    round_id = _create_round([word])
    session = _start(round_id)

    assert study_actions.delete_round(USER_ID, round_id).ok

    with database.session_scope() as db:
        assert db.get(StudySession, session["session_id"]) is None
    result = study_actions.get_round_progress(USER_ID, round_id)
    assert not result.ok
    assert result.error == "not_found"


def test_open_session_index_blocks_duplicates(make_words):
    (word,) = make_words(["one"])
    round_id = _create_round([word])
    _start(round_id)

    with pytest.raises(IntegrityError):
        with database.session_scope() as db:
            db.add(StudySession(
                user_id=USER_ID, round_id=round_id, type="normal", word_ids=[word], results=[],
            ))


# ---- Settings ----

def test_settings_defaults_and_update():
    defaults = study_actions.get_study_settings(USER_ID)
    assert defaults.ok
    assert defaults.data == {
        "session_size": 20,
        "freeze_rounds": 3,
        "auto_play_audio": False,
        "require_consecutive_known": False,
    }

    updated = study_actions.update_study_settings(USER_ID, freeze_rounds=5, auto_play_audio=True)
    assert updated.ok
    assert updated.data["freeze_rounds"] == 5
    assert updated.data["auto_play_audio"] is True
    assert updated.data["session_size"] == 20


@pytest.mark.parametrize("changes", [{"session_size": 0}, {"session_size": 61}, {"freeze_rounds": 21}])
def test_settings_bounds(changes):
    result = study_actions.update_study_settings(USER_ID, **changes)
    assert not result.ok
    assert result.error == "validation"
