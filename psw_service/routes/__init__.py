from . import booking, chat, psw

__all__ = ["booking", "chat", "psw"]
