from enum import Enum


class EmailStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"
    # 未配置任何 provider（本地/CI），只记录不发送
    SKIPPED = "skipped"
