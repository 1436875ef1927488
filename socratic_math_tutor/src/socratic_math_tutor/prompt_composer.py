"""
Prompt Composer

Assembles the text sent to the completion backend:
- the persona / rules system prompt for a problem
- the opening instruction for the first tutor question
- per-turn guidance built from the chosen question type, difficulty,
  struggle counter and depth signals

The composer is never given the problem's answer, so it cannot leak it.
"""

import random
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from socratic_math_tutor.session_state import (
    Assessment,
    DifficultyLevel,
    QuestionType,
    Turn,
    Role,
)


LENGTH_RULE = "Keep your reply to 1-2 sentences maximum."
QUESTION_RULE = "Your reply MUST end with a question mark."

QUESTION_TYPE_GUIDANCE: Mapping[QuestionType, str] = MappingProxyType({
    QuestionType.CLARIFICATION: "Help the student pin down what the problem is asking and what they mean.",
    QuestionType.ASSUMPTIONS: "Surface an assumption the student is making and ask whether it always holds.",
    QuestionType.EVIDENCE: "Ask what supports the student's claim or how they could check it.",
    QuestionType.PERSPECTIVE: "Invite another way of looking at the problem or a different approach.",
    QuestionType.IMPLICATIONS: "Ask what follows from the student's idea and where it leads next.",
    QuestionType.META_QUESTIONING: "Ask the student to reflect on how they are thinking about the problem.",
})

DIFFICULTY_GUIDANCE: Mapping[DifficultyLevel, str] = MappingProxyType({
    DifficultyLevel.BEGINNER: "Use plain words, one small step at a time, and lots of encouragement.",
    DifficultyLevel.INTERMEDIATE: "Use standard vocabulary and expect the student to connect two ideas.",
    DifficultyLevel.ADVANCED: "Be brief and push for justification, generalization and edge cases.",
})

# Template questions the tutor may adapt, keyed by type then context
QUESTION_BANK: Mapping[QuestionType, Mapping[str, Tuple[str, ...]]] = MappingProxyType({
    QuestionType.CLARIFICATION: {
        "high_confidence": (
            "Walk me through your thinking. How did you arrive at that?",
            "Can you explain that in your own words?",
            "What exactly are we trying to find here?",
        ),
        "low_confidence": (
            "Let's start simple. What information do we have?",
            "What's the very first thing you notice about this problem?",
            "If you had to describe this to a friend, what would you say?",
        ),
        "stuck": (
            "Let's break this down. What's just one small piece you understand?",
            "What's the easiest part of this problem?",
            "What do the numbers in the problem tell us?",
        ),
    },
    QuestionType.ASSUMPTIONS: {
        "high_confidence": (
            "What are you assuming must be true for that to work?",
            "Does that hold true in every case?",
            "What if we didn't make that assumption? What changes?",
        ),
        "low_confidence": (
            "What do we know for certain about this type of problem?",
            "Are there any rules or patterns that apply here?",
            "What properties of this idea can we count on?",
        ),
        "misconception": (
            "Let's test that. If that were true, what would happen?",
            "Can you think of a case where that might not work?",
            "What would need to be different for that to be correct?",
        ),
    },
    QuestionType.EVIDENCE: {
        "high_confidence": (
            "What supports that conclusion?",
            "How do you know that's the right approach?",
            "Can you show why that works?",
        ),
        "low_confidence": (
            "What makes you lean toward that answer?",
            "How could we check if that's on the right track?",
            "What part of the problem suggests that?",
        ),
        "after_correct": (
            "You got it! Now can you explain why that works?",
            "Can you show me the reasoning behind that?",
            "What rule or principle did you use there?",
        ),
    },
    QuestionType.PERSPECTIVE: {
        "high_confidence": (
            "Is there another way you could approach this?",
            "How might someone else solve this differently?",
            "What if we started from the end and worked back?",
        ),
        "low_confidence": (
            "What would a picture of this problem look like?",
            "What's a simpler version of this problem we could try first?",
            "How else could we describe what the problem is telling us?",
        ),
    },
    QuestionType.IMPLICATIONS: {
        "high_confidence": (
            "If that's true, what does it tell us about the next step?",
            "How does this connect to what you found earlier?",
            "What pattern do you notice emerging?",
        ),
        "low_confidence": (
            "If we tried that, what would happen?",
            "Let's follow that thought. Where does it lead?",
            "What's the next logical step from here?",
        ),
        "building": (
            "You're building toward something! What comes next?",
            "How does this piece fit with what you found before?",
            "What does this tell us about our goal?",
        ),
    },
    QuestionType.META_QUESTIONING: {
        "high_confidence": (
            "How did you decide to try that approach?",
            "What strategy are you using here?",
            "What does this problem remind you of?",
        ),
        "reflection": (
            "What made this problem challenging?",
            "How is this similar to problems you've solved before?",
            "If you saw this problem again, what would you do first?",
        ),
        "after_success": (
            "What was the key insight for you?",
            "How did your thinking change as you worked through this?",
            "What strategy worked best for you here?",
        ),
    },
})

METACOGNITIVE_PROMPTS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "processReflection": (
        "How did you decide to take that approach?",
        "What was your thinking process here?",
        "What made you choose this method?",
    ),
    "confidenceCheck": (
        "How confident are you in this answer? What makes you feel that way?",
        "What part of this solution feels most solid to you?",
    ),
    "strategyAwareness": (
        "What strategy are you using here? Have you used it before?",
        "Is this approach similar to problems you've solved before?",
        "What other methods could work for this problem?",
    ),
    "errorAnalysis": (
        "What do you think might have led to this mistake?",
        "If you were to start over, what would you do differently?",
        "What could help you avoid this error next time?",
    ),
})

LEARNING_OBJECTIVES = (
    ("algebra", "Understand how to isolate variables through inverse operations"),
    ("geometry", "Apply appropriate formulas and understand spatial relationships"),
    ("calculus", "Understand rates of change and accumulation"),
    ("arithmetic", "Apply basic mathematical operations accurately"),
)
DEFAULT_OBJECTIVE = "Develop problem-solving strategies and mathematical reasoning"

SYSTEM_PROMPT = """You are a Socratic math tutor. Your role is to guide students to discover solutions through well-timed questions, never giving direct answers.

FUNDAMENTAL RULES:
1. NEVER give the answer or the solution to the actual problem
2. ALWAYS respond with a question (brief encouragement is fine before it)
3. NEVER suggest a specific operation ("subtract 5", "divide by 2")
4. Reference the structure of the problem to nudge thinking
5. Questions must be SHORT (1-2 sentences max)
6. End EVERY response with a question mark
7. When the student is correct, probe deeper before moving on
8. Stay grounded in the actual problem: no metaphors or "imagine" stories

SCAFFOLDING EXCEPTION (you CAN say these):
- Restate the goal: "We're trying to find [what the problem asks for]"
- Restate the given information: "The problem tells us that [facts]"
BUT never say HOW to solve it.

THE SIX QUESTION TYPES:
- CLARIFICATION: when the student is vague or starting out
- ASSUMPTIONS: when the student relies on something unstated
- EVIDENCE: when the student makes a claim without support
- PERSPECTIVE: when the student needs to see alternatives
- IMPLICATIONS: when exploring consequences of an idea
- META-QUESTIONING: when building awareness of their own thinking

FORBIDDEN:
- "The answer is X"
- "Here's how you solve it: step 1..."
- "That's wrong. Try again."
- Long explanations without a question
- Several questions at once

REMEMBER: Your job is to teach them to think, not to give them the answer."""


@dataclass
class GuidanceContext:
    """Everything the per-turn guidance depends on."""
    question_type: QuestionType
    difficulty: DifficultyLevel
    assessment: Assessment
    struggling_counter: int = 0
    should_deepen_inquiry: bool = False
    is_understanding_check: bool = False
    current_depth: int = 1
    student_text: str = ""


class PromptComposer:
    """Builds system prompts, opening instructions and per-turn guidance."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def build_system_prompt(
        self,
        problem: str,
        concepts: Sequence[str],
        student_level: str = "intermediate",
    ) -> str:
        """Persona rules plus the problem context."""
        prompt = SYSTEM_PROMPT
        prompt += "\n\nCURRENT CONTEXT:"
        prompt += f"\nStudent level: {student_level}"
        prompt += f"\nProblem: {problem}"
        if concepts:
            prompt += f"\nKey concepts: {', '.join(concepts)}"
        prompt += f"\nLearning goal: {self.learning_objective(concepts)}"
        return prompt

    def build_opening_instruction(self, question_type: QuestionType) -> str:
        return (
            f"Use {question_type.label} questioning approach. {LENGTH_RULE} "
            f"Ask an indirect, exploratory question rather than a direct one. {QUESTION_RULE}"
        )

    def build_guidance(self, ctx: GuidanceContext) -> str:
        """
        Build the guidance message for one tutor turn.

        Args:
            ctx: Question type, difficulty, struggle and depth signals for this turn

        Returns:
            Guidance text; always carries the length cap and the end-in-a-question rule
        """
        assessment = ctx.assessment
        template = self.select_template_question(ctx.question_type, assessment, ctx.student_text)

        parts: List[str] = [
            f"RESPOND AS: {ctx.question_type.label.upper()} question.",
            QUESTION_TYPE_GUIDANCE[ctx.question_type],
            f'A question you may adapt: "{template}"',
        ]

        if ctx.is_understanding_check:
            parts.append(
                "This is an UNDERSTANDING CHECK: ask a question that reveals whether the "
                "student truly grasps the idea, rather than moving the problem forward."
            )

        parts.append(f"Difficulty: {ctx.difficulty.value}. {DIFFICULTY_GUIDANCE[ctx.difficulty]}")

        confidence_pct = round(assessment.confidence_level * 100)
        if assessment.confidence_level < 0.3:
            parts.append(
                f"Student is struggling (confidence {confidence_pct}%). Be supportive and break "
                "the problem into smaller steps; you may restate the goal or the given facts."
            )
        elif assessment.confidence_level > 0.8:
            parts.append(
                f"Student is confident (confidence {confidence_pct}%). Challenge them to "
                "justify their reasoning."
            )

        if assessment.has_misconceptions:
            parts.append(
                "Possible misconception: reference their idea and nudge them to test it "
                "with an evidence-seeking question."
            )

        parts.append(f"Conversation depth: level {ctx.current_depth}/5.")
        if ctx.should_deepen_inquiry:
            parts.append("The student is ready to deepen the inquiry with a more sophisticated question.")

        if ctx.struggling_counter > 2:
            parts.append(
                f"Student has struggled for {ctx.struggling_counter} turns: give more scaffolding "
                "and encouragement, but never the method or the answer."
            )

        parts.append(
            "Ask exactly one short, natural question. Do not reveal the answer, "
            "do not name a specific operation, and do not restate these instructions."
        )
        parts.append(LENGTH_RULE)
        parts.append(QUESTION_RULE)
        return "\n".join(parts)

    def build_messages(
        self,
        system_prompt: str,
        turns: Sequence[Turn],
        guidance: str,
    ) -> List[Dict[str, str]]:
        """Outbound chat request: system prompt, conversation, then guidance."""
        messages = [{"role": "system", "content": system_prompt}]
        messages.extend(t.to_chat_message() for t in turns if t.role is not Role.SYSTEM)
        messages.append({"role": "system", "content": guidance})
        return messages

    def select_template_question(
        self,
        question_type: QuestionType,
        assessment: Assessment,
        student_text: str = "",
    ) -> str:
        bank = QUESTION_BANK[question_type]
        confidence = assessment.confidence_level

        if question_type is QuestionType.ASSUMPTIONS and assessment.has_misconceptions:
            pool = bank["misconception"]
        elif question_type is QuestionType.EVIDENCE and assessment.readiness_for_advancement:
            pool = bank["after_correct"]
        elif question_type is QuestionType.IMPLICATIONS and len(student_text) > 50:
            pool = bank["building"]
        elif question_type is QuestionType.META_QUESTIONING and confidence > 0.8:
            pool = bank["after_success"]
        elif question_type is QuestionType.CLARIFICATION and confidence < 0.2:
            pool = bank["stuck"]
        elif question_type is QuestionType.META_QUESTIONING and assessment.depth_of_thinking >= 3:
            pool = bank["reflection"]
        else:
            key = "low_confidence" if confidence < 0.3 else "high_confidence"
            pool = bank.get(key) or bank["high_confidence"]

        return self.rng.choice(pool)

    def metacognitive_prompt(self, category: str) -> str:
        prompts = METACOGNITIVE_PROMPTS.get(category)
        if not prompts:
            return "How are you thinking about this problem?"
        return self.rng.choice(prompts)

    @staticmethod
    def learning_objective(concepts: Sequence[str]) -> str:
        for concept, objective in LEARNING_OBJECTIVES:
            if concept in concepts:
                return objective
        return DEFAULT_OBJECTIVE
