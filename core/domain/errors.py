"""
워크플로우 에러 분류

- PreconditionError: 상태/입력/역할 바인딩 오류. 원장 호출 전에 즉시 보고
- LedgerTransportError: 원장 노드 연결 불가. 부분 상태 없음, 호출자가 재시도 가능
- LedgerRejected: 트랜잭션 결과 코드가 tesSUCCESS가 아님. 해당 트랜잭션은 종료
"""

from core.types import ErrorKind


class WorkflowError(Exception):
    """워크플로우 에러 기본 클래스"""

    kind: ErrorKind = ErrorKind.PRECONDITION

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class PreconditionError(WorkflowError):
    """사전 조건 위반 (원장 호출 없음, 재시도 대상 아님)"""

    kind = ErrorKind.PRECONDITION


class LedgerTransportError(WorkflowError):
    """원장 노드 통신 실패

    연결/타임아웃 등. 트랜잭션 제출 후 대기 중 발생한 경우
    트랜잭션이 적용되지 않았다고 가정하면 안 됨.
    """

    kind = ErrorKind.TRANSPORT


class LedgerRejected(WorkflowError):
    """원장이 트랜잭션을 거부함

    Attributes:
        result_code: 원장 결과 코드 (예: tecNO_PERMISSION)
        tx_type: 거부된 트랜잭션 유형
        tx_hash: 트랜잭션 해시 (원장에 기록된 경우)
    """

    kind = ErrorKind.LEDGER_REJECTED

    def __init__(
        self,
        result_code: str,
        tx_type: str,
        tx_hash: str | None = None,
        message: str | None = None,
    ):
        self.result_code = result_code
        self.tx_type = tx_type
        self.tx_hash = tx_hash
        super().__init__(message or f"{tx_type} rejected: {result_code}")
