from enum import Enum, IntEnum, unique


@unique
class Privilege(IntEnum):
    NONE = 0   # 所有人可用
    ADMIN = 1  # 仅管理员


@unique
class Category(Enum):
    """入站消息分类，按优先级排列"""
    COMMAND = "command"
    TYPED_CONTENT = "typed_content"
    PLAIN_TEXT = "plain_text"


COMMAND_PREFIXES = ("/", "!")

# 媒体类型 -> 上传子目录
MEDIA_SUBDIRS = {
    "image": "images",
    "document": "documents",
    "audio": "audio",
    "video": "videos",
}
