"""宿主应用需要提供的乐谱/脚本协作接口。

核心只把它们当作不透明的能力使用，不关心脚本语言本身的语义。
"""

from pathlib import Path
from typing import Optional, Protocol


class ScriptEngine(Protocol):
    """脚本引擎：对给定路径的脚本文件求值，失败时抛出 ScriptError。"""

    def evaluate(self, script_path: Path) -> None:
        ...


class ActiveDocument(Protocol):
    """当前乐谱。

    begin_change / end_change 之间的所有修改构成一个撤销单元；
    rollback_change 撤销自 begin_change 以来的修改并结束该单元。
    """

    def has_active_document(self) -> bool:
        ...

    def begin_change(self) -> None:
        ...

    def end_change(self) -> None:
        ...

    def rollback_change(self) -> None:
        ...


class SnapshotSource(Protocol):
    """导出当前乐谱（MusicXML 等可移植格式）；没有打开的乐谱时返回 None。"""

    def export_current_document(self) -> Optional[str]:
        ...
