"""
缓存异常定义
"""


class PriceCacheError(Exception):
    """价格缓存异常基类"""


class InvalidArgument(PriceCacheError, ValueError):
    """请求参数非法（空的资产 ID、不支持的数据类型等），不应重试"""


class UpstreamUnavailable(PriceCacheError):
    """上游数据源获取失败，且没有可用的缓存数据"""

    def __init__(self, asset_id: str, kind: str, reason: str = ""):
        self.asset_id = asset_id
        self.kind = kind
        self.reason = reason
        message = f"上游数据不可用: {asset_id} ({kind})"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class StorageUnavailable(PriceCacheError):
    """缓存存储读写失败"""


class ProviderError(PriceCacheError):
    """数据提供者请求失败（HTTP 错误、限流、响应格式异常）"""

    def __init__(self, message: str, status: int = 0):
        self.status = status
        super().__init__(message)
