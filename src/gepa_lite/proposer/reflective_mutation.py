# Copyright (c) 2025 Lakshya A Agrawal and the GEPA contributors
# https://github.com/gepa-ai/gepa

import json
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

from gepa_lite.core.adapter import Candidate, EvaluationBatch, GEPAAdapter, maybe_await
from gepa_lite.logging.logger import LoggerProtocol
from gepa_lite.proposer.base import LanguageModel, Signature

EvaluateFn = Callable[[list[Any], Candidate, bool], Awaitable[EvaluationBatch]]

SUMMARY_NOT_CONFIGURED = "Task LM not configured; skipped summary."
SUMMARY_FAILED = "Summary generation failed."


class InstructionProposalSignature(Signature):
    prompt_template = """You are tasked with improving a text component based on execution feedback.<hint>

Component Name: <component_name>
Current Text:
<curr_instructions>

Execution Examples and Feedback:
<inputs_outputs_feedback>

Based on the feedback above, propose an improved version of the text that addresses the issues identified.
Focus on:
1. Fixing errors mentioned in the feedback
2. Improving clarity and specificity
3. Better handling edge cases
4. Maintaining the original intent while improving execution

Provide only the improved text, without any explanation or markdown formatting:"""
    input_keys = ["component_name", "current_instruction_doc", "dataset_with_feedback", "hint"]
    output_keys = ["new_instruction"]

    @classmethod
    def prompt_renderer(cls, input_dict: Mapping[str, Any]) -> str:
        hint = input_dict.get("hint")
        hint_block = f"\nAdditional guidance:\n{hint}\n" if hint else ""
        prompt = cls.prompt_template
        prompt = prompt.replace("<hint>", hint_block)
        prompt = prompt.replace("<component_name>", input_dict["component_name"])
        prompt = prompt.replace("<curr_instructions>", input_dict["current_instruction_doc"])
        prompt = prompt.replace(
            "<inputs_outputs_feedback>",
            json.dumps(list(input_dict["dataset_with_feedback"]), indent=2, default=str),
        )
        return prompt

    @classmethod
    def output_extractor(cls, lm_out: str) -> dict[str, str]:
        return {"new_instruction": lm_out.strip()}


class ReflectionSummarySignature(Signature):
    prompt_template = """You will receive reflection feedback grouped by component from an optimization iteration. Write a concise, user-readable summary that explains:
- The main issues observed in the feedback
- The specific changes the next candidate will try for each component
- Any trade-offs or uncertainties to watch for next iteration
Use short paragraphs and bullet points. Avoid code fences. Feedback JSON follows:

"""
    input_keys = ["reflective_dataset"]
    output_keys = ["summary"]

    @classmethod
    def prompt_renderer(cls, input_dict: Mapping[str, Any]) -> str:
        dataset = {name: list(examples) for name, examples in input_dict["reflective_dataset"].items()}
        return cls.prompt_template + json.dumps(dataset, indent=2, default=str)

    @classmethod
    def output_extractor(cls, lm_out: str) -> dict[str, str]:
        return {"summary": lm_out.strip()}


class ReflectiveMutationProposer:
    """
    Produces one child candidate from a parent:
    - traced evaluation of the parent on the minibatch
    - adapter builds the reflective dataset
    - adapter.propose_new_texts if present, else one reflection LM call per
      component with feedback, in selector order
    - child = copy of parent with the new texts; the key set never changes
    """

    def __init__(
        self,
        adapter: GEPAAdapter,
        evaluate: EvaluateFn,
        logger: LoggerProtocol,
        reflection_lm: LanguageModel | None = None,
        reflection_hint: str | None = None,
        summary_lm: LanguageModel | None = None,
        verbose: bool = False,
    ):
        self.adapter = adapter
        self.evaluate = evaluate
        self.logger = logger
        self.reflection_lm = reflection_lm
        self.reflection_hint = reflection_hint
        self.summary_lm = summary_lm
        self.verbose = verbose

        self.latest_reflection_prompt: str | None = None
        self.latest_reflection_summary: str | None = None

    @property
    def adapter_proposal_fn(self):
        return getattr(self.adapter, "propose_new_texts", None)

    async def propose_new_texts(
        self,
        candidate: Candidate,
        reflective_dataset: Mapping[str, Sequence[Mapping[str, Any]]],
        components_to_update: list[str],
    ) -> dict[str, str]:
        if self.adapter_proposal_fn is not None:
            proposed = await maybe_await(
                self.adapter_proposal_fn(candidate, reflective_dataset, components_to_update)
            )
            return {name: str(text) for name, text in proposed.items() if name in candidate}

        if self.reflection_lm is None:
            raise ValueError("reflection_lm must be provided when adapter.propose_new_texts is None.")

        new_texts: dict[str, str] = {}
        prompt_sections: list[str] = []
        for name in components_to_update:
            examples = reflective_dataset.get(name)
            if not examples:
                self.logger.log(f"Component '{name}' is not in reflective dataset. Skipping.", level="debug")
                continue

            input_dict = {
                "component_name": name,
                "current_instruction_doc": candidate[name],
                "dataset_with_feedback": examples,
                "hint": self.reflection_hint,
            }
            prompt = InstructionProposalSignature.prompt_renderer(input_dict)
            prompt_sections.append(f"----- Component: {name} -----\n{prompt}")
            new_texts[name] = (await InstructionProposalSignature.run(self.reflection_lm, input_dict))[
                "new_instruction"
            ]

        self.latest_reflection_prompt = "\n\n".join(prompt_sections) if prompt_sections else None
        return new_texts

    async def summarize(self, reflective_dataset: Mapping[str, Sequence[Mapping[str, Any]]]) -> str | None:
        """Human-readable reflection summary; only produced in verbose mode and never raises."""
        if not self.verbose:
            return None
        if self.summary_lm is None:
            return SUMMARY_NOT_CONFIGURED
        try:
            out = await ReflectionSummarySignature.run(self.summary_lm, {"reflective_dataset": reflective_dataset})
            return out["summary"]
        except Exception as e:
            self.logger.log(f"Reflection summary generation failed: {e}", level="warning")
            return SUMMARY_FAILED

    async def propose(self, parent: Candidate, minibatch: list[Any], components_to_update: list[str]) -> Candidate:
        eval_curr = await self.evaluate(minibatch, parent, True)

        reflective_dataset = await maybe_await(
            self.adapter.make_reflective_dataset(parent, eval_curr, components_to_update)
        )

        new_texts = await self.propose_new_texts(parent, reflective_dataset, components_to_update)
        self.latest_reflection_summary = await self.summarize(reflective_dataset)

        new_candidate = dict(parent)
        for name, text in new_texts.items():
            assert name in new_candidate, f"{name} missing in candidate"
            new_candidate[name] = text
            self.logger.log(f"Proposed new text for {name}: {text}", level="debug")
        return new_candidate
