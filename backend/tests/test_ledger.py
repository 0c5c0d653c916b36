import uuid
import pytest

from challengr.errors import InvariantViolation
from challengr.services import ledger
from challengr.services import submissions as machine
from conftest import make_challenge, make_profile


async def _pending(session, points=10):
    creator = await make_profile(session)
    submitter = await make_profile(session)
    challenge_id = await make_challenge(session, creator, points=points)
    s = await machine.create_submission(session, submitter_id=submitter, challenge_id=challenge_id, proof_text="done")
    return creator, submitter, challenge_id, s.id


@pytest.mark.asyncio
async def test_approval_settlement_is_idempotent(session):
    creator, submitter, _, sid = await _pending(session)
    kw = dict(submission_id=sid, submitter_id=submitter, validator_id=creator, challenge_points=10, validator_reward=5)

    assert await ledger.settle_approval(session, **kw) is True
    await session.commit()
    assert await ledger.settle_approval(session, **kw) is False
    await session.commit()

    assert await ledger.balance_of(session, submitter) == 10
    assert await ledger.balance_of(session, creator) == 5
    assert await ledger.ledger_total(session, submitter) == 10
    assert await ledger.ledger_total(session, creator) == 5
    kinds = [e.kind for e in await ledger.entries_for(session, submitter)]
    assert kinds == [ledger.APPROVAL_REWARD]


@pytest.mark.asyncio
async def test_rejection_settlement_is_idempotent(session):
    _, submitter, challenge_id, sid = await _pending(session)

    assert await ledger.settle_rejection(session, submission_id=sid, submitter_id=submitter, challenge_id=challenge_id) is True
    await session.commit()
    assert await ledger.settle_rejection(session, submission_id=sid, submitter_id=submitter, challenge_id=challenge_id) is False
    await session.commit()

    defeats = await ledger.defeats_for(session, submitter)
    assert [d.defeats_count for d in defeats] == [1]
    assert await ledger.balance_of(session, submitter) == 0


@pytest.mark.asyncio
async def test_defeats_accumulate_per_challenge(session):
    creator, submitter, challenge_id, sid = await _pending(session)
    await machine.reject(session, validator_id=creator, submission_id=sid, reason="Other")
    again = await machine.create_submission(session, submitter_id=submitter, challenge_id=challenge_id, proof_text="2")
    await machine.reject(session, validator_id=creator, submission_id=again.id, reason="Other")

    defeats = await ledger.defeats_for(session, submitter)
    assert len(defeats) == 1
    await session.refresh(defeats[0])
    assert defeats[0].defeats_count == 2


@pytest.mark.asyncio
async def test_negative_amount_is_refused(session):
    creator, submitter, _, sid = await _pending(session)
    with pytest.raises(InvariantViolation):
        await ledger.settle_approval(
            session, submission_id=sid, submitter_id=submitter, validator_id=creator,
            challenge_points=-10, validator_reward=5,
        )
    await session.rollback()
    assert await ledger.balance_of(session, submitter) == 0


@pytest.mark.asyncio
async def test_missing_account_is_an_invariant_violation(session):
    creator, _, _, sid = await _pending(session)
    ghost = uuid.uuid4()
    with pytest.raises(InvariantViolation):
        await ledger.settle_approval(
            session, submission_id=sid, submitter_id=ghost, validator_id=creator,
            challenge_points=10, validator_reward=5,
        )
    await session.rollback()
    assert await ledger.balance_of(session, creator) == 0
