# errors.py
"""错误分类

所有面向用户的错误都携带一条可直接回复给用户的文本 (user_message)。
"""


class BotError(Exception):
    """机器人错误基类"""

    def __init__(self, user_message: str, detail: str = ""):
        super().__init__(detail or user_message)
        self.user_message = user_message
        self.detail = detail


class ValidationError(BotError):
    """用户输入不合法，回复用法说明，不修改任何状态"""


class PermissionDenied(BotError):
    """权限不足，不修改任何状态"""

    def __init__(self, user_message: str = "❌ Access denied. Admin privileges required.", detail: str = ""):
        super().__init__(user_message, detail)


class NotFound(BotError):
    """引用的实体不存在"""


class UpstreamFailure(BotError):
    """Store / Channel / 外部服务调用失败，只记录日志，等待下一个周期自然重试"""


class DeliveryError(UpstreamFailure):
    """Channel 发送失败"""

    def __init__(self, receiver: str, detail: str = ""):
        super().__init__("❌ Could not deliver message.", detail or f"发送到 {receiver} 失败")
        self.receiver = receiver
