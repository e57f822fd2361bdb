from typing import Any, Mapping, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from journal.core.exceptions import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_payload(model_cls: Type[ModelT], data: Mapping[str, Any]) -> ModelT:
    """
    在路由之外（multipart 表单、服务层）校验 payload，错误格式与请求体校验保持一致。
    """
    try:
        return model_cls.model_validate(dict(data))
    except PydanticValidationError as exc:
        details = []
        for err in exc.errors():
            field = ".".join(str(p) for p in err.get("loc", ()))
            message = str(err.get("msg") or "invalid value")
            # pydantic 会给自定义 ValueError 加前缀
            details.append({"field": field, "message": message.removeprefix("Value error, ")})
        raise ValidationError("Invalid request data", details=details) from exc
