"""대화 메시지 데이터 모델 정의.

이 모듈은 Agent 루프와 LLM Gateway 사이에서 주고받는 메시지(OpenAI chat 형식)를 정의합니다.
"""

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Role(str, Enum):
    """메시지 발화자 역할."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ToolCall(BaseModel):
    """모델이 요청한 단일 도구 호출.

    arguments는 모델이 보낸 원본(JSON 문자열 또는 dict)을 그대로 보관하며,
    파싱과 검증은 Tool Registry의 dispatch 시점에만 수행합니다.
    """

    id: str = Field(..., description="모델이 부여한 호출 ID")
    name: str = Field(..., description="호출할 도구 이름")
    arguments: str | dict[str, Any] = Field(
        default="{}", description="원본 인자 (JSON 문자열 또는 dict)"
    )

    model_config = {"extra": "forbid"}

    def arguments_json(self) -> str:
        """인자를 wire 전송용 JSON 문자열로 반환."""
        if isinstance(self.arguments, str):
            return self.arguments
        return json.dumps(self.arguments, ensure_ascii=False)

    def to_openai(self) -> dict[str, Any]:
        """OpenAI tool_calls 항목 형식으로 변환."""
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments_json()},
        }


class Message(BaseModel):
    """대화의 한 턴.

    tool 역할 메시지는 tool_call_id와 name을 반드시 가집니다.
    """

    role: Role = Field(..., description="발화자 역할")
    content: str = Field(default="", description="텍스트 내용 (비어 있을 수 있음)")
    tool_calls: list[ToolCall] = Field(
        default_factory=list, description="assistant가 요청한 도구 호출 목록"
    )
    tool_call_id: str | None = Field(
        default=None, description="응답 대상 도구 호출 ID (tool 역할)"
    )
    name: str | None = Field(default=None, description="도구 이름 (tool 역할)")

    model_config = {"extra": "forbid"}

    @property
    def has_tool_calls(self) -> bool:
        """도구 호출 포함 여부."""
        return bool(self.tool_calls)

    @classmethod
    def system(cls, content: str) -> "Message":
        """시스템 메시지 생성 헬퍼."""
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        """사용자 메시지 생성 헬퍼."""
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(
        cls, content: str = "", tool_calls: list[ToolCall] | None = None
    ) -> "Message":
        """assistant 메시지 생성 헬퍼."""
        return cls(role=Role.ASSISTANT, content=content, tool_calls=tool_calls or [])

    @classmethod
    def tool_response(cls, tool_call_id: str, name: str, content: str) -> "Message":
        """도구 응답 메시지 생성 헬퍼."""
        return cls(
            role=Role.TOOL,
            content=content,
            tool_call_id=tool_call_id,
            name=name,
        )

    def to_openai(self) -> dict[str, Any]:
        """OpenAI chat completions 메시지 dict로 변환."""
        data: dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.tool_calls:
            data["tool_calls"] = [call.to_openai() for call in self.tool_calls]
        if self.role == Role.TOOL:
            data["tool_call_id"] = self.tool_call_id
            data["name"] = self.name
        return data
