"""
syncroom.core.clock
~~~~~~~~~~~~~~~~~~~

时钟抽象。房间闲置判断使用秒级墙钟，``syncStart`` 使用毫秒级时间戳。

测试中以假时钟替换 ``SystemClock``，从而无需真实等待即可验证闲置清理。
"""
from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """房间状态机所依赖的时钟接口。"""

    def now(self) -> float:
        """当前墙钟时间（秒）。"""
        ...

    def now_ms(self) -> int:
        """当前墙钟时间（毫秒）。"""
        ...


class SystemClock:
    """基于 ``time.time()`` 的真实时钟。"""

    def now(self) -> float:
        return time.time()

    def now_ms(self) -> int:
        return int(time.time() * 1000)
