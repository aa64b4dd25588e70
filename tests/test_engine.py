import asyncio

import pytest

from casefile.engine import CASE_CLOSED_RESPONSE, ScriptedDetectiveEngine
from casefile.errors import ScriptNotFoundError
from casefile.models import CaseStatus, CaseType, Speaker, StatusKind, TrustLevel
from casefile.scripts import DEFAULT_CATALOG, CaseScript, ScriptBeat

_STATUS_RANK = {
    StatusKind.BRIEFING: 0,
    StatusKind.INVESTIGATION: 1,
    StatusKind.SOLVED: 2,
    StatusKind.FAILED: 2,
}


def _engine(clock=None):
    return ScriptedDetectiveEngine(clock=clock)


def test_start_case_consumes_first_beat(clock):
    engine = _engine(clock)
    snapshot = asyncio.run(engine.start_case(CaseType.HOMICIDE))
    script = DEFAULT_CATALOG[CaseType.HOMICIDE]

    assert len(snapshot.turns) == 1
    opening = snapshot.turns[0]
    assert opening.speaker == Speaker.ENGINE
    assert opening.text == script.beats[0].response
    assert opening.timestamp == clock.now
    assert snapshot.status == CaseStatus.investigation()
    assert snapshot.clues == list(script.beats[0].new_clues)
    assert snapshot.suspects == list(script.suspects)
    assert snapshot.title == script.title
    assert engine.cursor_for(snapshot.id) == 1


def test_answer_appends_question_and_next_beat():
    engine = _engine()

    async def scenario():
        snapshot = await engine.start_case(CaseType.HOMICIDE)
        return snapshot, await engine.answer("Who was in room 12?", snapshot)

    before, after = asyncio.run(scenario())
    script = DEFAULT_CATALOG[CaseType.HOMICIDE]

    assert len(before.turns) == 1
    assert len(after.turns) == 3
    assert after.turns[1].speaker == Speaker.DETECTIVE
    assert after.turns[1].text == "Who was in room 12?"
    assert after.turns[2].speaker == Speaker.ENGINE
    assert after.turns[2].text == script.beats[1].response
    assert after.turns[2].new_clues == list(script.beats[1].new_clues)
    assert after.id == before.id


def test_question_text_is_kept_verbatim():
    engine = _engine()

    async def scenario():
        snapshot = await engine.start_case(CaseType.HEIST)
        return await engine.answer("  who had the key?  ", snapshot)

    snapshot = asyncio.run(scenario())
    assert snapshot.turns[1].text == "  who had the key?  "


def test_turn_counts_before_and_after_script_exhausted():
    engine = _engine()
    beats = len(DEFAULT_CATALOG[CaseType.HOMICIDE].beats)

    async def scenario():
        snapshot = await engine.start_case(CaseType.HOMICIDE)
        counts = [len(snapshot.turns)]
        texts = []
        for n in range(beats + 2):
            snapshot = await engine.answer(f"question {n}", snapshot)
            counts.append(len(snapshot.turns))
            texts.append(snapshot.turns[-1].text)
        return snapshot, counts, texts

    snapshot, counts, texts = asyncio.run(scenario())

    assert counts == [1 + 2 * n for n in range(beats + 3)]
    # Beat 0 was consumed by start; the remaining beats answer in order.
    assert texts[: beats - 1] == [beat.response for beat in DEFAULT_CATALOG[CaseType.HOMICIDE].beats[1:]]
    assert texts[beats - 1 :] == [CASE_CLOSED_RESPONSE] * 3
    assert snapshot.turns[-2].speaker == Speaker.DETECTIVE
    assert engine.cursor_for(snapshot.id) == beats


def test_closed_response_changes_nothing_but_turns():
    engine = _engine()

    async def scenario():
        snapshot = await engine.start_case(CaseType.MISSING_PERSON)
        while not snapshot.status.is_terminal:
            snapshot = await engine.answer("next", snapshot)
        closed = await engine.answer("anything else?", snapshot)
        return snapshot, closed

    solved, closed = asyncio.run(scenario())
    assert solved.status == CaseStatus.solved()
    assert closed.status == solved.status
    assert closed.clues == solved.clues
    assert closed.suspects == solved.suspects
    assert closed.turns[-1].text == CASE_CLOSED_RESPONSE
    assert closed.turns[-1].new_clues == []


@pytest.mark.parametrize("case_type", list(CaseType))
def test_status_only_moves_forward_and_clues_never_repeat(case_type):
    engine = _engine()

    async def scenario():
        snapshot = await engine.start_case(case_type)
        history = [snapshot]
        for _ in range(8):
            snapshot = await engine.answer("go on", snapshot)
            history.append(snapshot)
        return history

    history = asyncio.run(scenario())
    ranks = [_STATUS_RANK[snapshot.status.kind] for snapshot in history]
    assert ranks == sorted(ranks)
    assert history[-1].status.is_terminal

    sizes = [len(snapshot.clues) for snapshot in history]
    assert sizes == sorted(sizes)
    for snapshot in history:
        for index, clue in enumerate(snapshot.clues):
            assert clue not in snapshot.clues[index + 1 :]


def test_repeated_beat_clues_are_not_duplicated():
    base = DEFAULT_CATALOG[CaseType.HOMICIDE]
    repeated = base.beats[0].new_clues[0]
    first, second = base.beats[0], base.beats[1]
    second = type(second)(
        response=second.response,
        new_clues=(repeated, repeated, *second.new_clues),
        suspect_updates=second.suspect_updates,
    )
    catalog = {CaseType.HOMICIDE: CaseScript(base.title, base.synopsis, base.suspects, (first, second))}
    engine = ScriptedDetectiveEngine(catalog=catalog)

    async def scenario():
        snapshot = await engine.start_case(CaseType.HOMICIDE)
        return await engine.answer("again?", snapshot)

    snapshot = asyncio.run(scenario())
    assert snapshot.clues.count(repeated) == 1
    assert len(snapshot.clues) == 2
    # The turn still reports everything the beat declared.
    assert len(snapshot.turns[-1].new_clues) == 3


def test_suspects_are_replaced_wholesale():
    engine = _engine()

    async def scenario():
        snapshot = await engine.start_case(CaseType.HOMICIDE)
        snapshot = await engine.answer("camera?", snapshot)
        exposed = await engine.answer("the glass?", snapshot)
        restored = await engine.answer("footage?", exposed)
        return exposed, restored

    exposed, restored = asyncio.run(scenario())
    ali = next(s for s in exposed.suspects if s.name == "Ali Demir")
    assert ali.trust == TrustLevel.HOSTILE
    assert "22:15" in ali.alibi
    ali_again = next(s for s in restored.suspects if s.name == "Ali Demir")
    assert ali_again.trust == TrustLevel.SKEPTICAL


def test_answer_leaves_input_snapshot_untouched():
    engine = _engine()

    async def scenario():
        snapshot = await engine.start_case(CaseType.HEIST)
        copy = snapshot.model_copy(deep=True)
        await engine.answer("who knew the code?", snapshot)
        return snapshot, copy

    snapshot, copy = asyncio.run(scenario())
    assert snapshot == copy
    assert len(snapshot.turns) == 1


def test_unknown_case_type_raises_script_not_found():
    engine = ScriptedDetectiveEngine(catalog={})
    with pytest.raises(ScriptNotFoundError):
        asyncio.run(engine.start_case(CaseType.HEIST))


def test_answer_for_unregistered_type_raises_and_keeps_cursor():
    engine = _engine()
    snapshot = asyncio.run(engine.start_case(CaseType.HEIST))
    stripped = ScriptedDetectiveEngine(catalog={CaseType.HOMICIDE: DEFAULT_CATALOG[CaseType.HOMICIDE]})

    with pytest.raises(ScriptNotFoundError):
        asyncio.run(stripped.answer("hello?", snapshot))
    assert stripped.cursor_for(snapshot.id) == 0


def test_empty_script_opens_in_briefing():
    catalog = {CaseType.HEIST: CaseScript("Empty", "Nothing here", ())}
    engine = ScriptedDetectiveEngine(catalog=catalog)

    async def scenario():
        snapshot = await engine.start_case(CaseType.HEIST)
        return snapshot, await engine.answer("anyone?", snapshot)

    snapshot, answered = asyncio.run(scenario())
    assert snapshot.status == CaseStatus.briefing()
    assert snapshot.turns[0].text == ""
    assert snapshot.clues == []
    assert answered.turns[-1].text == CASE_CLOSED_RESPONSE


def test_sessions_keep_independent_cursors():
    engine = _engine()

    async def scenario():
        first = await engine.start_case(CaseType.HOMICIDE)
        second = await engine.start_case(CaseType.HOMICIDE)
        first = await engine.answer("a", first)
        first = await engine.answer("b", first)
        second = await engine.answer("c", second)
        return first, second

    first, second = asyncio.run(scenario())
    script = DEFAULT_CATALOG[CaseType.HOMICIDE]
    assert first.id != second.id
    assert engine.cursor_for(first.id) == 3
    assert engine.cursor_for(second.id) == 2
    assert second.turns[-1].text == script.beats[1].response


def test_concurrent_sessions_do_not_interfere():
    engine = ScriptedDetectiveEngine(latency=0.01)

    async def play(case_type):
        snapshot = await engine.start_case(case_type)
        for _ in range(3):
            snapshot = await engine.answer("next", snapshot)
        return snapshot

    async def scenario():
        return await asyncio.gather(*(play(case_type) for case_type in CaseType))

    results = asyncio.run(scenario())
    for snapshot in results:
        script = DEFAULT_CATALOG[snapshot.type]
        assert snapshot.turns[-1].text == script.beats[3].response
        assert engine.cursor_for(snapshot.id) == 4


def test_cancelled_answer_does_not_advance_cursor():
    engine = _engine()

    async def scenario():
        snapshot = await engine.start_case(CaseType.HOMICIDE)
        engine.latency = 10
        task = asyncio.create_task(engine.answer("slow question", snapshot))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        engine.latency = 0
        return snapshot, await engine.answer("retry", snapshot)

    snapshot, answered = asyncio.run(scenario())
    assert answered.turns[-1].text == DEFAULT_CATALOG[CaseType.HOMICIDE].beats[1].response
    assert engine.cursor_for(snapshot.id) == 2


def _scripted(*statuses):
    beats = tuple(ScriptBeat(response=f"beat {n}", status=status) for n, status in enumerate(statuses))
    return {CaseType.HEIST: CaseScript("Test vault", "A scripted test case.", (), beats)}


def _statuses_after_each_answer(catalog, answers):
    engine = ScriptedDetectiveEngine(catalog=catalog)

    async def scenario():
        snapshot = await engine.start_case(CaseType.HEIST)
        seen = [snapshot.status]
        for _ in range(answers):
            snapshot = await engine.answer("go on", snapshot)
            seen.append(snapshot.status)
        return seen

    return asyncio.run(scenario())


def test_terminal_status_absorbs_later_beat_overrides():
    catalog = _scripted(
        CaseStatus.investigation(),
        CaseStatus.solved(),
        CaseStatus.investigation(),
        CaseStatus.failed("late"),
    )
    seen = _statuses_after_each_answer(catalog, 3)
    assert seen == [CaseStatus.investigation(), CaseStatus.solved(), CaseStatus.solved(), CaseStatus.solved()]


def test_failed_case_cannot_become_solved():
    catalog = _scripted(CaseStatus.investigation(), CaseStatus.failed("Trail went cold"), CaseStatus.solved())
    seen = _statuses_after_each_answer(catalog, 2)
    assert seen[-1] == CaseStatus.failed("Trail went cold")


def test_status_never_moves_back_to_briefing():
    catalog = _scripted(CaseStatus.investigation(), CaseStatus.briefing(), None, CaseStatus.solved())
    seen = _statuses_after_each_answer(catalog, 3)
    assert [status.kind for status in seen] == [
        StatusKind.INVESTIGATION,
        StatusKind.INVESTIGATION,
        StatusKind.INVESTIGATION,
        StatusKind.SOLVED,
    ]
