from sqlalchemy.exc import SQLAlchemyError

StoreError = SQLAlchemyError
"""저장소(DB 드라이버, SQL 엔진)에서 발생한 에러.

제약 조건 위반, SQL 에러, 타입 매핑 실패 등은 감싸지 않고 그대로 전파됩니다.
"""


class UowError(Exception):
    """``FastUoW`` 와 관련된 모든 에러의 기본 클래스."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    ...


class StoreConnectionError(UowError):
    """커넥션 열기/닫기 실패. 해당 UoW 인스턴스는 더이상 사용할 수 없습니다."""

    ...


class UnsupportedCapabilityError(UowError):
    """현재 커넥션/트랜잭션이 벌크 로드 프로토콜을 지원하지 않습니다."""

    ...


class SchemaError(UowError):
    """엔티티 타입을 테이블 컬럼으로 기술할 수 없습니다."""

    ...


class TransactionCompletedError(UowError):
    """이미 커밋 또는 롤백된 트랜잭션에 작업을 요청했습니다."""

    ...


class UnitOfWorkClosedError(UowError):
    """열리지 않았거나 이미 dispose 된 UoW 에 작업을 요청했습니다."""

    ...


class ConcurrentUseError(UowError):
    """하나의 UoW 에 동시에 여러 작업이 진행중입니다."""

    ...


class DisposalRollbackError(UowError):
    """dispose 중 암묵적 롤백 실패.

    ``dispose()`` 는 예외를 던지지 않으므로 이 에러는 raise 되지 않고
    :attr:`SqlAlchemyUnitOfWork.disposal_error` 에 기록됩니다.
    """

    def __init__(self, message: str, cause: BaseException):
        super().__init__(message)
        self.cause = cause
