import uuid
import pytest
from sqlalchemy import select

from challengr.errors import AlreadyResolved, DuplicateReport, InvalidReason, NotFound
from challengr.models.submission import Submission
from challengr.services import reports
from challengr.services import submissions as machine
from conftest import make_challenge, make_profile


async def _approved_submission(session):
    creator = await make_profile(session)
    submitter = await make_profile(session)
    challenge_id = await make_challenge(session, creator)
    s = await machine.create_submission(session, submitter_id=submitter, challenge_id=challenge_id, proof_text="done")
    await machine.approve(session, validator_id=creator, submission_id=s.id)
    return s.id


@pytest.mark.asyncio
async def test_report_and_resolve_leaves_decision_alone(session):
    sid = await _approved_submission(session)
    reporter = await make_profile(session)
    moderator = await make_profile(session, role="moderator")

    r = await reports.file_report(session, reporter_id=reporter, submission_id=sid, reason="fake", description="staged")
    rid = r.id
    assert r.status == "pending"
    assert await reports.count_pending(session) == 1

    done = await reports.resolve_report(session, moderator_id=moderator, report_id=rid, outcome="dismissed")
    assert done.status == "dismissed"
    assert done.reviewed_by == moderator
    assert done.reviewed_at is not None
    assert await reports.count_pending(session) == 0

    status = await session.scalar(select(Submission.status).where(Submission.id == sid))
    assert status == "approved"


@pytest.mark.asyncio
async def test_resolving_twice_is_refused(session):
    sid = await _approved_submission(session)
    reporter = await make_profile(session)
    moderator = await make_profile(session, role="moderator")
    r = await reports.file_report(session, reporter_id=reporter, submission_id=sid, reason="spam", description="ad")
    rid = r.id

    await reports.resolve_report(session, moderator_id=moderator, report_id=rid, outcome="reviewed")
    with pytest.raises(AlreadyResolved):
        await reports.resolve_report(session, moderator_id=moderator, report_id=rid, outcome="dismissed")
    with pytest.raises(NotFound):
        await reports.resolve_report(session, moderator_id=moderator, report_id=uuid.uuid4(), outcome="reviewed")


@pytest.mark.asyncio
async def test_one_pending_report_per_reporter(session):
    sid = await _approved_submission(session)
    reporter = await make_profile(session)
    moderator = await make_profile(session, role="moderator")

    r = await reports.file_report(session, reporter_id=reporter, submission_id=sid, reason="spam", description="ad")
    rid = r.id
    with pytest.raises(DuplicateReport):
        await reports.file_report(session, reporter_id=reporter, submission_id=sid, reason="other", description="again")

    # once resolved, the same reporter may report again
    await reports.resolve_report(session, moderator_id=moderator, report_id=rid, outcome="reviewed")
    again = await reports.file_report(session, reporter_id=reporter, submission_id=sid, reason="other", description="again")
    assert again.status == "pending"


@pytest.mark.asyncio
async def test_report_validation(session):
    sid = await _approved_submission(session)
    reporter = await make_profile(session)
    with pytest.raises(InvalidReason):
        await reports.file_report(session, reporter_id=reporter, submission_id=sid, reason="boring", description="x")
    with pytest.raises(InvalidReason):
        await reports.file_report(session, reporter_id=reporter, submission_id=sid, reason="spam", description="  ")
    with pytest.raises(NotFound):
        await reports.file_report(session, reporter_id=reporter, submission_id=uuid.uuid4(), reason="spam", description="x")


@pytest.mark.asyncio
async def test_list_reports_filters_by_status(session):
    sid = await _approved_submission(session)
    moderator = await make_profile(session, role="moderator")
    a = await make_profile(session)
    b = await make_profile(session)
    ra = await reports.file_report(session, reporter_id=a, submission_id=sid, reason="spam", description="ad")
    rb = await reports.file_report(session, reporter_id=b, submission_id=sid, reason="fake", description="staged")
    ra_id, rb_id = ra.id, rb.id
    await reports.resolve_report(session, moderator_id=moderator, report_id=ra_id, outcome="reviewed")

    assert [r.id for r in await reports.list_reports(session, "pending")] == [rb_id]
    assert [r.id for r in await reports.list_reports(session, "reviewed")] == [ra_id]
    assert {r.id for r in await reports.list_reports(session, None)} == {ra_id, rb_id}
