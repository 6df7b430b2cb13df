"""Fixed instructions used to wrap caller code for the code modes."""

from __future__ import annotations

from .models import MessageRole

GENERATE_MODULE_SYSTEM_PROMPT = (
    "You are an expert Kotlin/Jetpack Compose developer. The user will provide "
    "code and you must transform it into a dynamic Compose module. Return ONLY "
    "the complete, compilable Kotlin code with no explanations or markdown. "
    "The code should:\n"
    "1. Be a self-contained Compose module\n"
    "2. Use Material3 components\n"
    "3. Include proper imports\n"
    "4. Be production-ready with error handling\n"
    "5. Include a @Composable function as the entry point"
)

SELF_MODIFY_SYSTEM_PROMPT = (
    "You are an AI that can modify and upgrade code. You receive existing code "
    "and an instruction for how to modify it. Return ONLY the complete modified "
    "code - no explanations, no markdown fences, no commentary. The code must "
    "be complete and ready to use."
)


def _message(role: MessageRole, content: str) -> dict[str, str]:
    return {"role": role.value, "content": content}


def build_generate_module_messages(code: str) -> list[dict[str, str]]:
    """Wrap caller code in the dynamic-module instruction."""
    user_prompt = (
        f"Transform this code into a dynamic Compose module:\n\n{code}\n\n"
        "Make this a dynamic Compose module that can be loaded at runtime "
        "via SplitCompat."
    )
    return [
        _message(MessageRole.SYSTEM, GENERATE_MODULE_SYSTEM_PROMPT),
        _message(MessageRole.USER, user_prompt),
    ]


def build_self_modify_messages(code: str, instruction: str) -> list[dict[str, str]]:
    """Wrap caller code and instruction in the modification prompt."""
    user_prompt = (
        f"Here is the current code:\n\n{code}\n\n"
        f"Instruction: {instruction}\n\n"
        "Return the complete modified code only."
    )
    return [
        _message(MessageRole.SYSTEM, SELF_MODIFY_SYSTEM_PROMPT),
        _message(MessageRole.USER, user_prompt),
    ]
