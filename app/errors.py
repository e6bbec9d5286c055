"""
Shopee 리스팅 파이프라인 예외 클래스

구조화된 에러 처리를 위한 예외 클래스 정의
"""
from typing import Optional, Dict, Any


class ListingError(Exception):
    """
    Base exception for all listing pipeline errors

    Attributes:
        message: 에러 메시지
        error_code: 에러 코드
        context: 추가 컨텍스트 정보
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """에러 정보를 딕셔너리로 변환"""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
        }


class AuthError(ListingError):
    """인증된 사용자가 없거나 계정 소유자가 아닌 경우"""


class AccountNotFoundError(ListingError):
    """필터로 지정한 계정이 사용자의 활성 계정으로 조회되지 않는 경우"""

    def __init__(self, account_id: Any, user_id: Any):
        super().__init__(
            f"활성 Shopee 계정을 찾을 수 없습니다: {account_id}",
            error_code="account_not_found",
            context={"account_id": str(account_id), "user_id": str(user_id)},
        )


class UpstreamError(ListingError):
    """
    Shopee API 호출 실패 (네트워크/타임아웃/비 2xx/비 JSON/에러 응답)

    Attributes:
        status_code: HTTP 상태 코드 (전송 실패 시 None)
        path: 호출한 API 경로
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        path: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = dict(context or {})
        if status_code is not None:
            ctx["status_code"] = status_code
        if path:
            ctx["path"] = path
        super().__init__(message, error_code="upstream_error", context=ctx)
        self.status_code = status_code
        self.path = path


class ConfigError(ListingError):
    """잘못된 환경/대상 설정 (기동 시 치명적)"""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="config_error", context=context)
