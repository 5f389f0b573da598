"""命令执行器。

按顺序把一批 ParsedCommand 交给脚本引擎求值：

1. 每批只检查一次是否有打开的乐谱；没有则整批失败，一条命令都不执行。
2. 每条命令先写入一个新的临时脚本文件，求值后无论成败都删除该文件。
3. 每条命令的修改都包在独立的 begin_change / end_change 中，一条命令对应一个撤销单元。
4. 某条命令失败不会中止整批，后续命令照常执行，所有失败都会记录下来。
"""

import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence
from uuid import uuid4

from notate_ai.commands.definitions import BatchResult, ExecutionEvent, ExecutionResult, ParsedCommand
from notate_ai.config.settings import settings
from notate_ai.document.interfaces import ActiveDocument, ScriptEngine
from notate_ai.domain.exceptions import NoActiveDocumentError, ScriptError
from notate_ai.infrastructure.logging.logger import logger

SCRATCH_PREFIX = "notateai_command_"
SCRATCH_SUFFIX = ".js"


@contextmanager
def change_scope(document: ActiveDocument, rollback_on_error: bool = False) -> Iterator[None]:
    """为一条命令开启撤销单元，任何退出路径都会结束它。"""

    document.begin_change()
    try:
        yield
    except BaseException:
        if rollback_on_error:
            document.rollback_change()
        else:
            document.end_change()
        raise
    else:
        document.end_change()


class CommandExecutor:
    def __init__(self, document: ActiveDocument, script_engine: ScriptEngine, cfg=settings):
        self._document = document
        self._engine = script_engine
        self._settings = cfg

    def run_batch(self, commands: Sequence[ParsedCommand]) -> BatchResult:
        """执行整批命令并汇总结果。"""

        if not commands:
            return BatchResult()
        results: List[ExecutionResult] = []
        try:
            for event in self.iter_batch(commands):
                if event.kind == "finished" and event.result is not None:
                    results.append(event.result)
        except NoActiveDocumentError as e:
            return BatchResult(error=e.message, error_code=e.code)

        first_failure = next((i for i, r in enumerate(results) if not r.success), None)
        return BatchResult(results=results, first_failure_index=first_failure)

    def iter_batch(self, commands: Sequence[ParsedCommand]) -> Iterator[ExecutionEvent]:
        """流式执行：每条命令产生 started / finished 两个事件。

        没有打开的乐谱时，在产生任何事件之前抛出 NoActiveDocumentError。
        """

        log_ctx: Dict[str, Any] = {"batch_id": f"bt-{uuid4().hex}", "command_count": len(commands)}
        if not self._document.has_active_document():
            self._log(logging.WARNING, "No active document, batch skipped", log_ctx)
            raise NoActiveDocumentError()

        self._log(logging.INFO, "Starting command batch", log_ctx)
        for index, command in enumerate(commands):
            yield ExecutionEvent(kind="started", index=index, command=command)
            result = self._run_one(command)
            if result.success:
                self._log(logging.INFO, "Command succeeded", log_ctx, index=index)
            else:
                self._log(
                    logging.WARNING,
                    "Command failed",
                    log_ctx,
                    index=index,
                    error=result.error_message,
                    line=result.error_location,
                )
            yield ExecutionEvent(kind="finished", index=index, command=command, result=result)
        self._log(logging.INFO, "Finished command batch", log_ctx)

    def _run_one(self, command: ParsedCommand) -> ExecutionResult:
        try:
            script_path = self._stage(command.code)
        except OSError as e:
            return ExecutionResult(success=False, error_message=f"Failed to create temporary script file: {e}")

        try:
            with change_scope(self._document, rollback_on_error=self._settings.rollback_failed_commands):
                self._engine.evaluate(script_path)
        except ScriptError as e:
            return ExecutionResult(success=False, error_message=e.message, error_location=e.line)
        except Exception as e:  # noqa: BLE001 - 引擎的任何异常都记为该命令失败，不中断整批
            logger.error(
                "Script engine raised unexpected error",
                extra={"extra": {"error_type": type(e).__name__, "error": str(e)}},
            )
            return ExecutionResult(success=False, error_message=str(e) or type(e).__name__)
        finally:
            self._remove(script_path)
        return ExecutionResult(success=True)

    def _stage(self, code: str) -> Path:
        fd, name = tempfile.mkstemp(prefix=SCRATCH_PREFIX, suffix=SCRATCH_SUFFIX, dir=self._scratch_dir())
        path = Path(name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(code)
        except OSError:
            self._remove(path)
            raise
        return path

    def _scratch_dir(self) -> Optional[str]:
        raw = getattr(self._settings, "scratch_dir", None)
        if not raw:
            return None
        path = Path(raw).expanduser()
        path.mkdir(parents=True, exist_ok=True)
        return str(path)

    @staticmethod
    def _remove(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Failed to remove scratch script", extra={"extra": {"path": str(path), "error": str(e)}})

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
