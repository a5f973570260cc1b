"""커스텀 예외 클래스 정의"""


class BaseAppError(Exception):
    """애플리케이션 기본 예외 클래스"""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class InputValidationError(BaseAppError):
    """호출자 입력 오류 (400) - 재시도 대상 아님"""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class NotFoundError(BaseAppError):
    """참조한 리소스가 없을 때 (404)"""

    def __init__(self, message: str):
        super().__init__(message, status_code=404)


class QuizNotFoundError(NotFoundError):
    """퀴즈를 찾을 수 없을 때 발생하는 예외 (404)"""

    def __init__(self, quiz_id: int):
        self.quiz_id = quiz_id
        super().__init__(f"퀴즈를 찾을 수 없습니다: {quiz_id}")


class QuestionNotFoundError(NotFoundError):
    """문항을 찾을 수 없을 때 발생하는 예외 (404)"""

    def __init__(self, question_id: int):
        self.question_id = question_id
        super().__init__(f"문항을 찾을 수 없습니다: {question_id}")


class AttemptNotFoundError(NotFoundError):
    """풀이 기록을 찾을 수 없을 때 발생하는 예외 (404)"""

    def __init__(self, attempt_id: int):
        self.attempt_id = attempt_id
        super().__init__(f"풀이 기록을 찾을 수 없습니다: {attempt_id}")


class QuizOwnershipError(BaseAppError):
    """다른 사용자 키의 퀴즈를 변경하려 할 때 (403)"""

    def __init__(self, quiz_id: int):
        super().__init__(f"해당 퀴즈에 대한 권한이 없습니다: {quiz_id}", status_code=403)


class NoStoredSource(BaseAppError):
    """재생성할 원본 텍스트가 저장되어 있지 않을 때 (409)"""

    def __init__(self, quiz_id: int):
        self.quiz_id = quiz_id
        super().__init__(
            f"원본 자료가 저장되지 않은 퀴즈는 재생성할 수 없습니다. 파일을 다시 업로드하세요: {quiz_id}",
            status_code=409,
        )


class PersistencePartialFailure(BaseAppError):
    """여러 행 저장이 일부만 성공했을 수 있는 상태 (500)"""

    def __init__(self, message: str, quiz_id: int | None = None):
        self.quiz_id = quiz_id
        super().__init__(message, status_code=500)


class GenerationUnavailable(BaseAppError):
    """Gemini 호출 불가 (타임아웃/과부하/API 오류, 503) - 호출자 재시도 가능"""

    def __init__(self, message: str = "문제 생성 모델을 사용할 수 없습니다. 잠시 후 다시 시도해주세요."):
        super().__init__(message, status_code=503)


class GenerationFailed(BaseAppError):
    """수정 요청 후에도 모델 출력이 계약을 만족하지 못함 (502)

    reason: "format" (JSON/구조 오류) 또는 "semantic" (검증 규칙 위반)
    """

    def __init__(self, reason: str, violations: list[str]):
        self.reason = reason
        self.violations = list(violations)
        summary = "; ".join(self.violations) or reason
        super().__init__(f"퀴즈 생성에 실패했습니다 ({reason}): {summary}", status_code=502)


class GenerationFormatError(Exception):
    """모델 출력 파싱 실패 (내부 분류용)"""

    reason = "format"

    def __init__(self, violations: list[str]):
        self.violations = list(violations)
        super().__init__("; ".join(self.violations))


class GenerationSemanticError(Exception):
    """파싱은 되었으나 검증 규칙 위반 (내부 분류용)"""

    reason = "semantic"

    def __init__(self, violations: list[str]):
        self.violations = list(violations)
        super().__init__("; ".join(self.violations))
