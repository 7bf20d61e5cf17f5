# Copyright (c) 2025 Lakshya A Agrawal and the GEPA contributors
# https://github.com/gepa-ai/gepa

import time
from typing import Any

from tqdm.auto import tqdm

from gepa_lite.adapters.default_adapter import DefaultAdapter
from gepa_lite.config import GEPAConfig, ModelConfig
from gepa_lite.core.adapter import Candidate, EvaluationBatch, GEPAAdapter, maybe_await
from gepa_lite.core.pareto import ParetoPoint, average, build_pareto_front, hypervolume_2d
from gepa_lite.core.persistence import ArchiveEvent, FilePersistence, PersistenceProtocol
from gepa_lite.core.result import GEPAResult
from gepa_lite.core.rng import Xorshift32
from gepa_lite.core.state import ArchiveRecord, HistoryEntry, ObjectiveScores, RunState
from gepa_lite.lm import make_litellm_lm, resolve_lm
from gepa_lite.logging.logger import LoggerProtocol, StdOutLogger
from gepa_lite.logging.utils import log_iteration_summary
from gepa_lite.proposer.reflective_mutation import ReflectiveMutationProposer
from gepa_lite.strategies.batch_sampler import EpochShuffledBatchSampler
from gepa_lite.strategies.candidate_selector import resolve_candidate_selector
from gepa_lite.strategies.component_selector import resolve_component_selector
from gepa_lite.utils.stop_condition import StagnationStopper, build_budget_stopper

SUMMARY_TEMPERATURE = 0.3


class GEPAEngine:
    """
    Orchestrates the optimization loop. Each iteration:
    - checks the budgets (metric calls, cost, iterations, in that order)
    - recomputes the Pareto front and selects a parent
    - draws a minibatch; skips the iteration if the parent is already perfect on it
    - selects components and asks the proposer for a child
    - evaluates parent and child on the minibatch and accepts on a strictly
      higher score sum; accepted children are evaluated on the full valset
    - records history, logs the front, persists, and checks stagnation

    The loop is sequential. Every adapter evaluation charges its batch size
    in metric calls and its reported ``cost_usd`` to the run totals.
    """

    def __init__(
        self,
        config: GEPAConfig,
        persistence: PersistenceProtocol | None = None,
        summary_lm: Any = None,
        resume: bool | None = None,
    ):
        config.validate()
        self.config = config
        self.logger: LoggerProtocol = config.logger if config.logger is not None else StdOutLogger()

        self.trainset = list(config.trainset)
        self.valset = list(config.validation_set)
        self.adapter: GEPAAdapter = self._build_adapter(config)
        self.reflection_lm = resolve_lm(config.reflection_lm)
        self.summary_lm = summary_lm if summary_lm is not None else self._build_summary_lm(config)

        if persistence is None and config.persistence is not None:
            persistence = FilePersistence(config.persistence.dir, archive_file=config.persistence.archive_file)
        self.persistence = persistence
        self.checkpoint_every = config.persistence.checkpoint_every_iterations if config.persistence else 1
        if resume is None:
            resume = config.persistence.resume if config.persistence is not None else False
        self.resume = resume

        self.budget_stopper = build_budget_stopper(
            max_metric_calls=config.max_metric_calls,
            max_budget_usd=config.max_budget_usd,
            max_iterations=config.max_iterations,
        )
        self.stagnation_stopper = StagnationStopper(config.early_stopping_trials)
        self.component_selector = resolve_component_selector(config.component_selector)

        self.proposer = ReflectiveMutationProposer(
            adapter=self.adapter,
            evaluate=self._evaluate,
            logger=self.logger,
            reflection_lm=self.reflection_lm,
            reflection_hint=config.reflection_hint,
            summary_lm=self.summary_lm,
            verbose=config.verbose,
        )

        self.state: RunState | None = None
        self._progress: tqdm | None = None

    @staticmethod
    def _build_adapter(config: GEPAConfig) -> GEPAAdapter:
        if config.adapter is not None:
            return config.adapter
        if isinstance(config.task_lm, (str, ModelConfig)):
            return DefaultAdapter(config.task_lm)
        raise ValueError("task_lm must be a model name or ModelConfig when no adapter is provided")

    @staticmethod
    def _build_summary_lm(config: GEPAConfig) -> Any:
        task_lm = config.task_lm
        if isinstance(task_lm, str):
            return make_litellm_lm(task_lm, temperature=SUMMARY_TEMPERATURE)
        if isinstance(task_lm, ModelConfig):
            return make_litellm_lm(
                ModelConfig(name=task_lm.name, temperature=SUMMARY_TEMPERATURE, max_tokens=task_lm.max_tokens)
            )
        # callable task_lm: no summary model
        return None

    # -------- evaluation --------

    async def _evaluate(self, batch: list[Any], candidate: Candidate, capture_traces: bool = False) -> EvaluationBatch:
        assert self.state is not None
        eval_batch = await maybe_await(self.adapter.evaluate(batch, candidate, capture_traces=capture_traces))
        if len(eval_batch.scores) != len(batch):
            raise ValueError(
                f"Adapter returned {len(eval_batch.scores)} scores for a batch of {len(batch)} instances"
            )
        self.state.charge(len(batch), eval_batch.total_cost())
        if self._progress is not None and self.config.max_metric_calls is not None:
            self._progress.update(len(batch))
        return eval_batch

    async def _evaluate_full(self, candidate: Candidate) -> tuple[ObjectiveScores, float, list[float]]:
        eval_batch = await self._evaluate(self.valset, candidate)
        correctness = average(eval_batch.scores)
        scores = {"correctness": correctness, "latency": -max(0.0, eval_batch.mean_latency())}
        return scores, correctness, list(eval_batch.scores)

    # -------- state --------

    async def _initialize_state(self) -> RunState:
        if self.persistence is not None and self.resume:
            loaded = self.persistence.load_checkpoint()
            if loaded is not None:
                if set(loaded.component_names) != set(self.config.seed_candidate):
                    self.logger.log(
                        "Checkpoint components do not match the seed candidate; starting fresh",
                        level="warning",
                        checkpoint_components=loaded.component_names,
                    )
                else:
                    self.state = loaded
                    self.logger.log(
                        "Resumed from checkpoint",
                        iteration=loaded.iteration,
                        candidates=len(loaded.archive),
                        total_metric_calls=loaded.total_metric_calls,
                    )
                    return loaded

        self.state = RunState(rng=Xorshift32(self.config.seed))
        seed_candidate = dict(self.config.seed_candidate)
        scores, scalar, instance_scores = await self._evaluate_full(seed_candidate)
        self.state.add_record(ArchiveRecord(candidate=seed_candidate, scores=scores, scalar_score=scalar), instance_scores)
        self.logger.log("Seed candidate evaluated", scores=scores)
        return self.state

    def _pareto_front(self, state: RunState) -> list[ParetoPoint]:
        return build_pareto_front(state.objective_records(), self.config.tie_epsilon)

    def _save_checkpoint(self, state: RunState) -> None:
        if self.persistence is not None:
            self.persistence.save_checkpoint(state)

    def _append_event(self, iteration: int, event: str, data: Any = None) -> None:
        if self.persistence is not None:
            self.persistence.append_archive_event(ArchiveEvent(iteration=iteration, event=event, data=data))

    # -------- loop --------

    async def _run_iteration(self, state: RunState, iteration: int) -> bool:
        """Run one iteration; returns True when the run should stop for stagnation."""
        pareto_front = self._pareto_front(state)
        parent_idx = self.candidate_selector.select_candidate_idx(state, pareto_front)
        parent = state.archive[parent_idx]
        self.logger.log(
            f"Iteration {iteration}: Selected program {parent_idx} score: {parent.scalar_score}", level="debug"
        )

        minibatch = self.batch_sampler.next_batch(self.trainset, iteration - 1)
        state.sampler_state = self.batch_sampler.state_dict()

        if self.config.skip_perfect_score:
            gate_eval = await self._evaluate(minibatch, parent.candidate)
            avg_score = average(gate_eval.scores)
            if avg_score >= self.config.perfect_score:
                self.logger.log(
                    "Skipping iteration due to perfect score", level="debug", iteration=iteration, avg_score=avg_score
                )
                return False

        components = self.component_selector(state, parent_idx, parent.candidate, iteration)
        child = await self.proposer.propose(parent.candidate, minibatch, components)

        parent_eval = await self._evaluate(minibatch, parent.candidate)
        child_eval = await self._evaluate(minibatch, child)
        parent_sum = sum(parent_eval.scores)
        child_sum = sum(child_eval.scores)
        accepted = child_sum > parent_sum + self.config.tie_epsilon

        record: ArchiveRecord | None = None
        if accepted:
            scores, scalar, instance_scores = await self._evaluate_full(child)
            record = ArchiveRecord(candidate=child, scores=scores, scalar_score=scalar, parent=parent_idx)
            new_idx = state.add_record(record, instance_scores)
            state.stagnation = 0
            self.logger.log(
                "Accepted new candidate",
                iteration=iteration,
                candidate_idx=new_idx,
                improvement=child_sum - parent_sum,
                val_score=scalar,
            )
        else:
            state.stagnation += 1
            self.logger.log(
                "Rejected candidate",
                level="debug",
                iteration=iteration,
                parent_score=parent_sum,
                child_score=child_sum,
            )

        state.history.append(
            HistoryEntry(
                iteration=iteration,
                candidate=child,
                scores=dict(record.scores) if record is not None else {},
                accepted=accepted,
            )
        )

        iter_front = self._pareto_front(state)
        iter_hv = hypervolume_2d([point.scores for point in iter_front])
        if iter_hv is not None:
            self.logger.log("Iter hypervolume (2D)", iteration=iteration, hypervolume2D=iter_hv)

        if self.config.verbose:
            log_iteration_summary(
                self.logger,
                iteration,
                state,
                iter_front,
                iter_hv,
                reflection_prompt=self.proposer.latest_reflection_prompt,
                reflection_summary=self.proposer.latest_reflection_summary,
            )

        self._append_event(
            iteration,
            "accepted" if accepted else "rejected",
            record.to_dict() if record is not None else None,
        )
        if iteration % self.checkpoint_every == 0:
            self._save_checkpoint(state)

        if self.stagnation_stopper(state, iteration):
            self.logger.log(self.stagnation_stopper.reason, stagnation=state.stagnation)
            self._append_event(iteration, "stagnation", {"stagnation": state.stagnation})
            return True
        return False

    async def run(self) -> GEPAResult:
        start_time = time.time()
        self.logger.log(
            "Starting GEPA optimization",
            train_size=len(self.trainset),
            val_size=len(self.valset),
            components=list(self.config.seed_candidate.keys()),
            max_metric_calls=self.config.max_metric_calls,
            max_budget_usd=self.config.max_budget_usd,
            max_iterations=self.config.max_iterations,
        )

        if self.config.display_progress_bar:
            if self.config.max_metric_calls is not None:
                self._progress = tqdm(total=self.config.max_metric_calls, desc="GEPA Optimization", unit="rollouts")
            else:
                self._progress = tqdm(total=self.config.max_iterations, desc="GEPA Optimization", unit="it")

        try:
            state = await self._initialize_state()
            state.is_consistent()
            if self._progress is not None:
                self._progress.n = (
                    state.total_metric_calls if self.config.max_metric_calls is not None else state.iteration
                )
                self._progress.refresh()

            self.batch_sampler = EpochShuffledBatchSampler(self.config.reflection_minibatch_size, rng=state.rng)
            if state.sampler_state is not None:
                self.batch_sampler.load_state_dict(state.sampler_state)
            self.candidate_selector = resolve_candidate_selector(
                self.config.candidate_selection_strategy, rng=state.rng
            )

            self._append_event(state.iteration, "start", {"candidates": len(state.archive)})

            stop = self.stagnation_stopper(state, state.iteration)
            if stop:
                self.logger.log(self.stagnation_stopper.reason, stagnation=state.stagnation)

            while not stop:
                next_iteration = state.iteration + 1
                if self.budget_stopper(state, next_iteration):
                    self.logger.log(
                        self.budget_stopper.reason,
                        iteration=state.iteration,
                        total_metric_calls=state.total_metric_calls,
                        total_cost_usd=state.total_cost_usd,
                    )
                    break
                state.iteration = next_iteration
                stop = await self._run_iteration(state, next_iteration)
                if self._progress is not None and self.config.max_metric_calls is None:
                    self._progress.update(1)
        finally:
            if self._progress is not None:
                self._progress.close()
                self._progress = None

        return self._finalize(state, start_time)

    def _finalize(self, state: RunState, start_time: float) -> GEPAResult:
        pareto_front = self._pareto_front(state)
        hv = hypervolume_2d([point.scores for point in pareto_front])
        if hv is not None:
            self.logger.log("Pareto hypervolume (2D)", hypervolume2D=hv)

        self._append_event(state.iteration, "finish", {"hv": hv})
        self._save_checkpoint(state)

        result = GEPAResult.from_state(state, pareto_front, hypervolume=hv)
        self.logger.log(
            "GEPA optimization complete",
            duration=time.time() - start_time,
            iterations=result.iterations,
            total_metric_calls=result.total_metric_calls,
            total_cost_usd=result.total_cost_usd,
            best_score=result.best_score,
            pareto_size=len(pareto_front),
        )
        return result
