import asyncio
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from challengr.db import Base
from challengr.errors import AlreadyResolved
from challengr.services import audit, ledger
from challengr.services import submissions as machine
from conftest import make_challenge, make_profile


@pytest_asyncio.fixture
async def file_engine(tmp_path):
    # separate connections on a real file, so two transactions can contend
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'race.db'}", connect_args={"timeout": 15})
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield eng
    finally:
        await eng.dispose()


async def _seed(maker):
    async with maker() as s:
        creator = await make_profile(s)
        veteran = await make_profile(s)
        submitter = await make_profile(s)
        challenge_id = await make_challenge(s, creator, points=20)
        first = await machine.create_submission(s, submitter_id=veteran, challenge_id=challenge_id, proof_text="v")
        await machine.approve(s, validator_id=creator, submission_id=first.id)
        pending = await machine.create_submission(s, submitter_id=submitter, challenge_id=challenge_id, proof_text="done")
        return creator, veteran, submitter, pending.id


@pytest.mark.asyncio
@pytest.mark.parametrize("approve_first", [True, False])
async def test_concurrent_approve_and_reject_resolve_once(file_engine, approve_first):
    maker = async_sessionmaker(file_engine, expire_on_commit=False)
    creator, veteran, submitter, sid = await _seed(maker)

    async def _approve():
        async with maker() as s:
            return await machine.approve(s, validator_id=creator, submission_id=sid)

    async def _reject():
        async with maker() as s:
            return await machine.reject(s, validator_id=veteran, submission_id=sid, reason="Other")

    contenders = [_approve(), _reject()] if approve_first else [_reject(), _approve()]
    results = await asyncio.gather(*contenders, return_exceptions=True)

    winners = [r for r in results if not isinstance(r, BaseException)]
    losers = [r for r in results if isinstance(r, BaseException)]
    assert len(winners) == 1
    assert len(losers) == 1 and isinstance(losers[0], AlreadyResolved)

    async with maker() as s:
        assert await audit.count_for_submission(s, sid) == 1
        history = await audit.history_for_submission(s, sid)
        assert history[0].action == winners[0].status

        if winners[0].status == "approved":
            assert history[0].validator_id == creator
            assert await ledger.balance_of(s, submitter) == 20
            assert await ledger.balance_of(s, creator) == 10
            assert await ledger.defeats_for(s, submitter) == []
        else:
            assert history[0].validator_id == veteran
            assert await ledger.balance_of(s, submitter) == 0
            assert await ledger.balance_of(s, creator) == 5
            assert [d.defeats_count for d in await ledger.defeats_for(s, submitter)] == [1]
        # rejecting pays nothing, and the veteran's own approval was paid once
        assert await ledger.balance_of(s, veteran) == 20

        for uid in (creator, veteran, submitter):
            assert await ledger.ledger_total(s, uid) == await ledger.balance_of(s, uid)
