"""오케스트레이션 실행(Run) 데이터 모델 정의."""

import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, Field

from .agent import AgentResult, ProgressStatus


class TaskRun(BaseModel):
    """하나의 사용자 질의에 대한 전체 실행 기록.

    실행 시작 시 생성되어 호출자에게 반환되며, 코어에서는 영속화하지 않습니다.
    """

    session_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()), description="실행 고유 ID"
    )
    original_query: str = Field(..., description="사용자 원본 질의")
    subtask_prompts: list[str] = Field(
        default_factory=list, description="분해된 하위 작업 목록"
    )
    progress: list[ProgressStatus] = Field(
        default_factory=list, description="Agent별 최종 진행 상태"
    )
    results: list[AgentResult] = Field(
        default_factory=list, description="Agent 순번 순서의 결과"
    )
    started_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="시작 시간"
    )
    completed_at: datetime | None = Field(default=None, description="종료 시간")
    answer: str | None = Field(default=None, description="최종 답변")

    @property
    def successful_results(self) -> list[AgentResult]:
        """성공한 Agent 결과만 반환."""
        return [r for r in self.results if r.is_success]

    @property
    def duration_seconds(self) -> float | None:
        """실행 소요 시간(초)."""
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def mark_completed(self, answer: str) -> None:
        """최종 답변과 종료 시간 기록."""
        self.answer = answer
        self.completed_at = datetime.now(UTC)
