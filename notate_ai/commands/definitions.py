"""命令数据结构定义。

这些 dataclass 描述了模型回复中嵌入的 notateai 命令块及其执行结果：
- ParsedCommand：从回复文本中提取出的一段脚本代码及其在原文中的位置。
- ExecutionResult / BatchResult：单条命令与整批命令的执行结果。
- ExecutionEvent：流式执行时产生的事件，便于 UI 展示进度。
"""

from dataclasses import dataclass, field
from typing import List, Literal, Optional


@dataclass(frozen=True)
class ParsedCommand:
    """一段待执行的脚本。offset 指整个代码块（含标记）在原回复中的字符区间。"""

    code: str
    start_offset: int
    end_offset: int


@dataclass
class ExecutionResult:
    success: bool
    error_message: Optional[str] = None
    error_location: Optional[int] = None


@dataclass
class BatchResult:
    """整批命令的执行结果。

    - results: 与命令一一对应的结果，顺序一致。
    - first_failure_index: 第一条失败命令的下标；全部成功时为 None。
    - error / error_code: 仅在批次级失败（例如没有打开的乐谱）时设置，此时 results 为空。
    """

    results: List[ExecutionResult] = field(default_factory=list)
    first_failure_index: Optional[int] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None and self.first_failure_index is None

    @property
    def failures(self) -> List[int]:
        return [i for i, r in enumerate(self.results) if not r.success]


@dataclass
class ExecutionEvent:
    kind: Literal["started", "finished"]
    index: int
    command: ParsedCommand
    result: Optional[ExecutionResult] = None
