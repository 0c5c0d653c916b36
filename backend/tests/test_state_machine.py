import uuid
import pytest
from sqlalchemy import select, func

from challengr.errors import AlreadyResolved, DuplicatePending, InvalidReason, NotEligible, NotFound
from challengr.models.audit import ValidationAudit
from challengr.models.challenge import ChallengeProgress
from challengr.models.post import FeedPost
from challengr.models.submission import Submission
from challengr.services import audit, ledger, reports
from challengr.services import submissions as machine
from conftest import make_challenge, make_profile


async def _setup(session, points=20):
    creator = await make_profile(session)
    submitter = await make_profile(session)
    challenge_id = await make_challenge(session, creator, points=points)
    return creator, submitter, challenge_id


async def _status(session, submission_id):
    return await session.scalar(select(Submission.status).where(Submission.id == submission_id))


@pytest.mark.asyncio
async def test_create_writes_feed_post_progress_and_notifies_pool(session, emitter):
    creator, submitter, challenge_id = await _setup(session)
    s = await machine.create_submission(
        session, submitter_id=submitter, challenge_id=challenge_id, proof_text="  did it  ", emitter=emitter,
    )
    assert s.status == "pending"
    assert s.proof_text == "did it"

    post = await session.scalar(select(FeedPost).where(FeedPost.submission_id == s.id))
    assert post is not None and post.user_id == submitter
    progress = await session.scalar(select(ChallengeProgress).where(ChallengeProgress.user_id == submitter))
    assert progress.status == "in_progress"

    assert emitter.kinds_for(creator) == ["new_submission"]
    assert emitter.kinds_for(submitter) == []


@pytest.mark.asyncio
async def test_create_requires_some_proof(session):
    _, submitter, challenge_id = await _setup(session)
    with pytest.raises(InvalidReason):
        await machine.create_submission(session, submitter_id=submitter, challenge_id=challenge_id, proof_text="   ")
    assert await session.scalar(select(func.count()).select_from(Submission)) == 0


@pytest.mark.asyncio
async def test_create_unknown_challenge(session):
    submitter = await make_profile(session)
    with pytest.raises(NotFound):
        await machine.create_submission(session, submitter_id=submitter, challenge_id=uuid.uuid4(), proof_text="x")


@pytest.mark.asyncio
async def test_second_pending_submission_is_refused(session):
    _, submitter, challenge_id = await _setup(session)
    await machine.create_submission(session, submitter_id=submitter, challenge_id=challenge_id, proof_text="one")
    with pytest.raises(DuplicatePending):
        await machine.create_submission(session, submitter_id=submitter, challenge_id=challenge_id, proof_text="two")
    n = await session.scalar(select(func.count()).select_from(Submission).where(Submission.user_id == submitter))
    assert n == 1


@pytest.mark.asyncio
async def test_creator_approves_and_points_are_settled(session, emitter):
    creator, submitter, challenge_id = await _setup(session, points=20)
    s = await machine.create_submission(session, submitter_id=submitter, challenge_id=challenge_id, proof_text="done")
    sid = s.id

    approved = await machine.approve(session, validator_id=creator, submission_id=sid, emitter=emitter)
    assert approved.status == "approved"
    assert approved.validator_id == creator
    assert approved.validated_at is not None
    assert approved.rejection_reason is None

    assert await ledger.balance_of(session, submitter) == 20
    assert await ledger.balance_of(session, creator) == 5
    rows = (await session.execute(select(ValidationAudit).where(ValidationAudit.submission_id == sid))).scalars().all()
    assert len(rows) == 1 and rows[0].action == "approved"
    assert rows[0].meta_json["points_awarded"] == 20

    progress = await session.scalar(
        select(ChallengeProgress).where(ChallengeProgress.user_id == submitter).execution_options(populate_existing=True)
    )
    assert progress.status == "completed"
    assert emitter.kinds_for(submitter) == ["submission_approved"]


@pytest.mark.asyncio
async def test_reject_stores_reason_and_counts_defeat(session, emitter):
    creator, submitter, challenge_id = await _setup(session)
    s = await machine.create_submission(session, submitter_id=submitter, challenge_id=challenge_id, proof_text="meh")
    sid = s.id

    rejected = await machine.reject(
        session, validator_id=creator, submission_id=sid, reason="Insufficient proof provided", emitter=emitter,
    )
    assert rejected.status == "rejected"
    assert rejected.rejection_reason == "Insufficient proof provided"

    assert await ledger.balance_of(session, submitter) == 0
    defeats = await ledger.defeats_for(session, submitter)
    assert [(d.challenge_id, d.defeats_count) for d in defeats] == [(challenge_id, 1)]
    assert emitter.kinds_for(submitter) == ["submission_rejected"]
    assert emitter.sent[-1][2]["reason"] == "Insufficient proof provided"


@pytest.mark.asyncio
async def test_reject_with_unknown_reason_changes_nothing(session):
    creator, submitter, challenge_id = await _setup(session)
    s = await machine.create_submission(session, submitter_id=submitter, challenge_id=challenge_id, proof_text="meh")
    sid = s.id
    with pytest.raises(InvalidReason):
        await machine.reject(session, validator_id=creator, submission_id=sid, reason="looks bad")
    assert await _status(session, sid) == "pending"


@pytest.mark.asyncio
async def test_second_validator_gets_already_resolved(session):
    creator, submitter, challenge_id = await _setup(session)
    veteran = await make_profile(session)
    first = await machine.create_submission(session, submitter_id=veteran, challenge_id=challenge_id, proof_text="v")
    await machine.approve(session, validator_id=creator, submission_id=first.id)

    s = await machine.create_submission(session, submitter_id=submitter, challenge_id=challenge_id, proof_text="done")
    sid = s.id
    await machine.approve(session, validator_id=creator, submission_id=sid)
    with pytest.raises(AlreadyResolved):
        await machine.approve(session, validator_id=veteran, submission_id=sid)
    with pytest.raises(AlreadyResolved):
        await machine.reject(session, validator_id=veteran, submission_id=sid, reason="Other")

    n = await session.scalar(select(func.count()).select_from(ValidationAudit).where(ValidationAudit.submission_id == sid))
    assert n == 1
    # veteran keeps only the reward for their own approved submission
    assert await ledger.balance_of(session, veteran) == 20
    assert await ledger.balance_of(session, submitter) == 20


@pytest.mark.asyncio
async def test_retry_by_same_validator_is_already_resolved(session):
    creator, submitter, challenge_id = await _setup(session)
    s = await machine.create_submission(session, submitter_id=submitter, challenge_id=challenge_id, proof_text="done")
    sid = s.id
    await machine.approve(session, validator_id=creator, submission_id=sid)
    with pytest.raises(AlreadyResolved):
        await machine.approve(session, validator_id=creator, submission_id=sid)
    assert await ledger.balance_of(session, submitter) == 20
    assert await ledger.balance_of(session, creator) == 5


@pytest.mark.asyncio
async def test_stranger_cannot_validate(session):
    _, submitter, challenge_id = await _setup(session)
    stranger = await make_profile(session)
    s = await machine.create_submission(session, submitter_id=submitter, challenge_id=challenge_id, proof_text="done")
    sid = s.id
    with pytest.raises(NotEligible):
        await machine.approve(session, validator_id=stranger, submission_id=sid)
    assert await _status(session, sid) == "pending"
    assert await ledger.balance_of(session, stranger) == 0
    assert await session.scalar(select(func.count()).select_from(ValidationAudit)) == 0


@pytest.mark.asyncio
async def test_creator_cannot_validate_own_submission(session):
    creator, _, challenge_id = await _setup(session)
    s = await machine.create_submission(session, submitter_id=creator, challenge_id=challenge_id, proof_text="mine")
    sid = s.id
    with pytest.raises(NotEligible) as exc:
        await machine.approve(session, validator_id=creator, submission_id=sid)
    assert "own submission" in exc.value.message
    assert await _status(session, sid) == "pending"


@pytest.mark.asyncio
async def test_unknown_submission_is_not_found(session):
    creator = await make_profile(session)
    with pytest.raises(NotFound):
        await machine.approve(session, validator_id=creator, submission_id=uuid.uuid4())


@pytest.mark.asyncio
async def test_resubmission_after_rejection(session):
    creator, submitter, challenge_id = await _setup(session)
    s = await machine.create_submission(session, submitter_id=submitter, challenge_id=challenge_id, proof_text="one")
    await machine.reject(session, validator_id=creator, submission_id=s.id, reason="Poor quality submission")

    again = await machine.create_submission(session, submitter_id=submitter, challenge_id=challenge_id, proof_text="two")
    assert again.id != s.id and again.status == "pending"
    await machine.approve(session, validator_id=creator, submission_id=again.id)

    assert await ledger.balance_of(session, submitter) == 20
    mine = await machine.list_user_submissions(session, submitter)
    assert sorted(x.status for x in mine) == ["approved", "rejected"]


@pytest.mark.asyncio
async def test_notification_failure_does_not_undo_transition(session, emitter):
    creator, submitter, challenge_id = await _setup(session)
    s = await machine.create_submission(session, submitter_id=submitter, challenge_id=challenge_id, proof_text="done")
    sid = s.id
    emitter.fail = True
    await machine.approve(session, validator_id=creator, submission_id=sid, emitter=emitter)
    assert await _status(session, sid) == "approved"
    assert await ledger.balance_of(session, submitter) == 20


@pytest.mark.asyncio
async def test_queue_flags_eligibility_and_history(session):
    creator, submitter, challenge_id = await _setup(session)
    stranger = await make_profile(session)
    s = await machine.create_submission(session, submitter_id=submitter, challenge_id=challenge_id, proof_text="done")

    creator_queue = await machine.list_validation_queue(session, creator)
    assert [(x.id, ok) for (x, ok) in creator_queue] == [(s.id, True)]
    stranger_queue = await machine.list_validation_queue(session, stranger)
    assert [(x.id, ok) for (x, ok) in stranger_queue] == [(s.id, False)]
    assert await machine.list_validation_queue(session, stranger, eligible_only=True) == []
    assert await machine.list_validation_queue(session, submitter) == []

    await machine.approve(session, validator_id=creator, submission_id=s.id)
    assert await machine.list_validation_queue(session, creator) == []
    assert [x.id for x in await machine.list_validated_by(session, creator)] == [s.id]


async def _audit_snapshot(session, submission_id):
    row = (await session.execute(
        select(
            ValidationAudit.id, ValidationAudit.submission_id, ValidationAudit.validator_id, ValidationAudit.action,
            ValidationAudit.reason, ValidationAudit.comment, ValidationAudit.meta_json, ValidationAudit.created_at,
        ).where(ValidationAudit.submission_id == submission_id)
    )).one()
    return tuple(row)


@pytest.mark.asyncio
async def test_decision_audit_is_unchanged_by_later_activity(session):
    creator, submitter, challenge_id = await _setup(session)
    veteran = await make_profile(session)
    mod = await make_profile(session, role="moderator")
    first = await machine.create_submission(session, submitter_id=veteran, challenge_id=challenge_id, proof_text="v")
    await machine.approve(session, validator_id=creator, submission_id=first.id)

    s = await machine.create_submission(session, submitter_id=submitter, challenge_id=challenge_id, proof_text="one")
    sid = s.id
    await machine.reject(session, validator_id=creator, submission_id=sid, reason="Poor quality submission", comment="blurry")
    before = await _audit_snapshot(session, sid)

    with pytest.raises(AlreadyResolved):
        await machine.approve(session, validator_id=creator, submission_id=sid, comment="changed my mind")
    with pytest.raises(AlreadyResolved):
        await machine.reject(session, validator_id=veteran, submission_id=sid, reason="Other")

    report = await reports.file_report(session, reporter_id=veteran, submission_id=sid, reason="fake", description="staged")
    await reports.resolve_report(session, moderator_id=mod, report_id=report.id, outcome="reviewed")

    again = await machine.create_submission(session, submitter_id=submitter, challenge_id=challenge_id, proof_text="two")
    await machine.approve(session, validator_id=veteran, submission_id=again.id)

    assert await _audit_snapshot(session, sid) == before
    history = await audit.history_for_submission(session, sid)
    assert [(h.action, h.validator_id, h.reason, h.comment) for h in history] == [
        ("rejected", creator, "Poor quality submission", "blurry"),
    ]
    assert await _status(session, sid) == "rejected"
