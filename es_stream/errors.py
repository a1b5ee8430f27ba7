"""es_stream 예외 계층

원격 호출 실패(elasticsearch.ApiError, TransportError 등)는 감싸지 않고
그대로 전파한다. 여기에는 호출자 측 계약 위반만 정의한다.
"""


class StreamError(Exception):
    """es_stream 예외의 루트"""


class MalformedActionError(StreamError, ValueError):
    """payload 유무가 액션 종류와 맞지 않는 등 잘못된 bulk 액션"""

    def __init__(self, message: str, action: object = None):
        super().__init__(message)
        self.action = action


class ConfigError(StreamError, ValueError):
    """잘못된 설정값 (batch_size, on_error, 클러스터 인증 등)"""
