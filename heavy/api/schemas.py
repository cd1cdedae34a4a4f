"""API 스키마 정의.

FastAPI 엔드포인트에서 사용하는 Request/Response 스키마를 정의합니다.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from heavy.models import AgentResult, ProgressStatus, ResultStatus

from .runs import RunRecord, RunState

# =============================================================================
# Common Schemas
# =============================================================================


class APIResponse(BaseModel):
    """표준 API 응답 형식."""

    success: bool = Field(..., description="요청 성공 여부")
    data: Any = Field(default=None, description="응답 데이터")
    error: str | None = Field(default=None, description="에러 메시지")
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="추가 메타데이터"
    )


class ErrorResponse(BaseModel):
    """에러 응답 형식."""

    success: bool = Field(default=False, description="항상 False")
    error: str = Field(..., description="에러 메시지")
    error_code: str | None = Field(default=None, description="에러 코드")
    details: dict[str, Any] = Field(default_factory=dict, description="상세 에러 정보")


class HealthResponse(BaseModel):
    """서비스 상태 응답."""

    status: str = Field(..., description="상태 (healthy)")
    provider: str = Field(..., description="설정된 LLM 프로바이더")
    model: str = Field(..., description="설정된 모델")
    parallel_agents: int = Field(..., description="기본 Agent 수")
    active_runs: int = Field(default=0, description="실행 중인 Run 수")
    total_runs: int = Field(default=0, description="전체 Run 수")


# =============================================================================
# Run Schemas
# =============================================================================


class CreateRunRequest(BaseModel):
    """Run 생성 요청."""

    query: str = Field(
        ...,
        min_length=1,
        description="사용자 질의",
        examples=["Compare PostgreSQL and MySQL for analytics workloads"],
    )
    num_agents: int | None = Field(
        default=None, ge=1, le=16, description="Agent 수 (기본값: 설정값)"
    )


class AgentResultSchema(BaseModel):
    """Agent 결과 스키마."""

    agent_index: int = Field(..., description="Agent 순번 (0부터)")
    status: ResultStatus = Field(..., description="성공/실패")
    text: str = Field(default="", description="Agent 출력 텍스트")
    error_message: str | None = Field(default=None, description="실패 사유")
    iterations: int = Field(default=0, description="사용한 반복 횟수")

    @classmethod
    def from_result(cls, result: AgentResult) -> "AgentResultSchema":
        """AgentResult에서 생성."""
        return cls(**result.model_dump())


class RunStatusResponse(BaseModel):
    """Run 상태 응답."""

    run_id: str = Field(..., description="Run ID")
    query: str = Field(..., description="사용자 질의")
    status: RunState = Field(..., description="Run 상태")
    num_agents: int = Field(..., description="Agent 수")
    progress: list[ProgressStatus] = Field(
        default_factory=list, description="Agent별 진행 상태"
    )
    subtasks: list[str] = Field(default_factory=list, description="분해된 하위 작업")
    created_at: datetime = Field(..., description="생성 시간")
    completed_at: datetime | None = Field(default=None, description="종료 시간")
    error: str | None = Field(default=None, description="에러 메시지")

    @classmethod
    def from_record(cls, record: RunRecord) -> "RunStatusResponse":
        """RunRecord에서 생성."""
        return cls(
            run_id=record.run_id,
            query=record.query,
            status=record.state,
            num_agents=record.orchestrator.num_agents,
            progress=record.progress,
            subtasks=record.result.subtask_prompts if record.result else [],
            created_at=record.created_at,
            completed_at=record.completed_at,
            error=record.error,
        )


class RunResultResponse(RunStatusResponse):
    """Run 결과 응답 (최종 답변 포함)."""

    answer: str | None = Field(default=None, description="최종 답변")
    results: list[AgentResultSchema] = Field(
        default_factory=list, description="Agent별 결과"
    )
    duration_seconds: float | None = Field(default=None, description="소요 시간(초)")

    @classmethod
    def from_record(cls, record: RunRecord) -> "RunResultResponse":
        """RunRecord에서 생성."""
        base = RunStatusResponse.from_record(record).model_dump()
        run = record.result
        return cls(
            **base,
            answer=record.answer,
            results=[AgentResultSchema.from_result(r) for r in run.results] if run else [],
            duration_seconds=run.duration_seconds if run else None,
        )
