"""Agent 실행 관련 데이터 모델 정의.

이 모듈은 Agent 루프의 진행 상태, 실행 컨텍스트, 최종 결과를 정의합니다.
"""

from enum import Enum

from pydantic import BaseModel, Field

from .message import Message


class ProgressStatus(str, Enum):
    """Agent 슬롯의 진행 상태.

    QUEUED → INITIALIZING → PROCESSING → {COMPLETED | FAILED} 순서로만 전이합니다.
    """

    QUEUED = "queued"  # 대기 중
    INITIALIZING = "initializing"  # 대화 준비 중
    PROCESSING = "processing"  # 모델/도구 호출 중
    COMPLETED = "completed"  # 성공 종료
    FAILED = "failed"  # 실패 종료

    @property
    def rank(self) -> int:
        """전이 순서 비교용 순위."""
        return _STATUS_RANK[self]

    @property
    def is_terminal(self) -> bool:
        """종료 상태 여부."""
        return self in (ProgressStatus.COMPLETED, ProgressStatus.FAILED)

    def can_transition_to(self, target: "ProgressStatus") -> bool:
        """target으로의 전이가 전진 방향인지 확인."""
        if self.is_terminal:
            return False
        return target.rank > self.rank


_STATUS_RANK = {
    ProgressStatus.QUEUED: 0,
    ProgressStatus.INITIALIZING: 1,
    ProgressStatus.PROCESSING: 2,
    ProgressStatus.COMPLETED: 3,
    ProgressStatus.FAILED: 3,
}


class ResultStatus(str, Enum):
    """Agent 결과 상태."""

    SUCCESS = "success"
    ERROR = "error"


class AgentContext(BaseModel):
    """단일 Agent 실행의 작업 상태.

    Agent 루프가 한 번의 실행 동안 독점적으로 소유하며, 결과 생성 후 폐기됩니다.
    """

    agent_index: int = Field(..., ge=0, description="실행 내 Agent 순번 (0부터)")
    subtask_prompt: str = Field(..., description="이 Agent에 할당된 하위 작업")
    conversation: list[Message] = Field(
        default_factory=list, description="대화 기록 (추가만 가능)"
    )
    iteration_count: int = Field(default=0, ge=0, description="Gateway 호출 횟수")
    status: ProgressStatus = Field(
        default=ProgressStatus.QUEUED, description="현재 진행 상태"
    )
    accumulated_text: list[str] = Field(
        default_factory=list, description="assistant 텍스트 누적"
    )

    def append(self, message: Message) -> None:
        """대화에 메시지 추가."""
        self.conversation.append(message)

    def joined_text(self) -> str:
        """누적 텍스트를 빈 줄로 연결해 반환."""
        return "\n\n".join(self.accumulated_text)


class AgentResult(BaseModel):
    """Agent 실행의 최종 결과 (불변).

    Agent마다 정확히 한 번 생성됩니다.
    """

    agent_index: int = Field(..., ge=0, description="실행 내 Agent 순번")
    status: ResultStatus = Field(..., description="성공/실패")
    text: str = Field(default="", description="Agent가 생성한 텍스트")
    error_message: str | None = Field(default=None, description="실패 사유")
    iterations: int = Field(default=0, ge=0, description="사용한 반복 횟수")

    model_config = {"extra": "forbid", "frozen": True}

    @property
    def is_success(self) -> bool:
        """성공 여부."""
        return self.status == ResultStatus.SUCCESS

    @classmethod
    def success(cls, agent_index: int, text: str, iterations: int) -> "AgentResult":
        """성공 결과 생성 헬퍼."""
        return cls(
            agent_index=agent_index,
            status=ResultStatus.SUCCESS,
            text=text,
            iterations=iterations,
        )

    @classmethod
    def failure(
        cls,
        agent_index: int,
        error_message: str,
        text: str = "",
        iterations: int = 0,
    ) -> "AgentResult":
        """실패 결과 생성 헬퍼."""
        return cls(
            agent_index=agent_index,
            status=ResultStatus.ERROR,
            text=text,
            error_message=error_message,
            iterations=iterations,
        )
