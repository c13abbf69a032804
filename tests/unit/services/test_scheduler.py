import asyncio

from runescan.services.scheduler import JobOutcome, JobRunner


async def test_completed_job():
    runner = JobRunner()
    ran = []

    async def job():
        ran.append(1)

    assert await runner.run("sync", job, timeout=1) == JobOutcome.COMPLETED
    await asyncio.sleep(0)
    assert ran == [1]
    assert not runner.is_running("sync")


async def test_failed_job_releases_guard():
    runner = JobRunner()

    async def job():
        raise RuntimeError("boom")

    assert await runner.run("sync", job, timeout=1) == JobOutcome.FAILED
    await asyncio.sleep(0)
    assert not runner.is_running("sync")


async def test_timeout_keeps_job_running_and_skips_overlap():
    runner = JobRunner()
    release = asyncio.Event()
    finished = []

    async def slow_job():
        await release.wait()
        finished.append(1)

    assert await runner.run("sync", slow_job, timeout=0.01) == JobOutcome.TIMED_OUT
    assert runner.is_running("sync")

    assert await runner.run("sync", slow_job, timeout=0.01) == JobOutcome.SKIPPED

    release.set()
    await runner.wait("sync")
    await asyncio.sleep(0)

    assert finished == [1]
    assert not runner.is_running("sync")


async def test_independent_job_names():
    runner = JobRunner()
    release = asyncio.Event()

    async def slow_job():
        await release.wait()

    async def quick_job():
        return None

    assert await runner.run("backfill", slow_job, timeout=0.01) == JobOutcome.TIMED_OUT
    assert await runner.run("sync", quick_job, timeout=1) == JobOutcome.COMPLETED
    release.set()
    await runner.wait("backfill")
