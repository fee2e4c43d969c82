from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    One engine-scoped setting of a client, read from "{TYPE}_{ENGINE}_{env_key}".

    Attributes:
        env_key (str): Key without the "{TYPE}_{ENGINE}_" prefix, e.g. "BASE_URL".
        val_type (str): "string", "number", "bool" or "list".
        default (str | int | float | bool | list | None): Used when the variable is unset. None makes it mandatory.
    """

    env_key: str
    val_type: str = "string"
    default: str | int | float | bool | list | None = None

    def is_required(self) -> bool:
        return self.default is None
