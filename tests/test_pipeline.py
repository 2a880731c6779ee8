from types import SimpleNamespace

import pytest

from adrelevance.pipeline import PipelineStep, StepRunner


def test_steps_run_in_order_and_honor_skip_guards():
    context = SimpleNamespace(trail=[], stop=False)

    def record(name):
        return lambda ctx: ctx.trail.append(name)

    def halt(ctx):
        ctx.trail.append("halt")
        ctx.stop = True

    runner = StepRunner(
        [
            PipelineStep("first", record("first")),
            PipelineStep("halt", halt),
            PipelineStep("skipped", record("skipped"), skip_if=lambda ctx: ctx.stop),
            PipelineStep("last", record("last")),
        ]
    )

    executed = runner.run(context)

    assert executed == ["first", "halt", "last"]
    assert context.trail == ["first", "halt", "last"]


def test_step_errors_propagate_and_stop_the_run():
    trail = []

    def boom(_ctx):
        raise RuntimeError("boom")

    runner = StepRunner([PipelineStep("boom", boom), PipelineStep("after", lambda ctx: trail.append("after"))])

    with pytest.raises(RuntimeError):
        runner.run(SimpleNamespace())
    assert trail == []


def test_duplicate_step_names_are_rejected():
    with pytest.raises(ValueError):
        StepRunner([PipelineStep("same", lambda ctx: None), PipelineStep("same", lambda ctx: None)])
