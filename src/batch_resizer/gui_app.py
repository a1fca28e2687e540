"""一括リサイズのデスクトップGUI。"""

from __future__ import annotations

import queue
import threading
from dataclasses import replace
from pathlib import Path
from tkinter import filedialog, messagebox
from typing import Any, List, Optional, Tuple

import customtkinter
from loguru import logger

from batch_resizer.batch import BatchReport, BatchRunner, default_worker_count
from batch_resizer.errors import ResizeError, describe_error
from batch_resizer.formats import supported_extensions
from batch_resizer.gui_settings_store import MODE_CUSTOM, MODE_PRESET, GuiSettings, GuiSettingsStore
from batch_resizer.jobs import discover_image_paths, enumerate_jobs
from batch_resizer.models import EncodeOptions, PresetSpec, ResizeOutcome, ResizeSpec
from batch_resizer.presets import PresetCatalog, default_catalog
from batch_resizer.runtime_logging import record_run_summary, resolve_log_dir, setup_logging
from batch_resizer.ui_text_presenter import (
    build_completion_text,
    build_failure_report_text,
    build_outcome_line,
    build_preset_label,
    build_progress_text,
    build_target_summary_text,
)
from batch_resizer.validators import PathValidator, ValueValidator

POLL_INTERVAL_MS = 50
FAILURE_PREVIEW_LIMIT = 20
_MODE_LABELS = {MODE_PRESET: "プリセット", MODE_CUSTOM: "カスタム"}


class BatchResizerApp(customtkinter.CTk):
    """ファイル選択からバッチ実行・結果表示までを1画面で行うウィンドウ。

    リサイズ処理はバックグラウンドスレッドで BatchRunner を動かし、
    結果はキュー経由で受け取って `after()` のポーリングで画面へ反映する。
    """

    def __init__(self, settings_store: Optional[GuiSettingsStore] = None) -> None:
        super().__init__()
        self.title("Batch Resizer")
        self.settings_store = settings_store or GuiSettingsStore()
        self.settings = self.settings_store.load()
        self.geometry(self.settings.window_geometry or GuiSettings.window_geometry)

        self.catalog: PresetCatalog = default_catalog()
        self._preset_by_label = {build_preset_label(p): p.name for p in self.catalog.values()}
        self.input_paths: List[Path] = []
        self._runner: Optional[BatchRunner] = None
        self._worker_thread: Optional[threading.Thread] = None
        self._events: "queue.Queue[Tuple[str, Any]]" = queue.Queue()

        self._build_ui()
        self._apply_mode()
        self.protocol("WM_DELETE_WINDOW", self._on_close)

    # ------------------------------------------------------------------
    # UI構築
    # ------------------------------------------------------------------
    def _build_ui(self) -> None:
        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(4, weight=1)

        input_frame = customtkinter.CTkFrame(self)
        input_frame.grid(row=0, column=0, sticky="ew", padx=12, pady=(12, 6))
        input_frame.grid_columnconfigure(3, weight=1)
        customtkinter.CTkButton(input_frame, text="画像を選択", width=110, command=self._select_files).grid(
            row=0, column=0, padx=6, pady=6
        )
        customtkinter.CTkButton(input_frame, text="フォルダーを追加", width=130, command=self._select_folder).grid(
            row=0, column=1, padx=6, pady=6
        )
        customtkinter.CTkButton(input_frame, text="クリア", width=70, command=self._clear_inputs).grid(
            row=0, column=2, padx=6, pady=6
        )
        self.input_count_var = customtkinter.StringVar(value="画像が選択されていません")
        customtkinter.CTkLabel(input_frame, textvariable=self.input_count_var, anchor="w").grid(
            row=0, column=3, sticky="ew", padx=6
        )

        customtkinter.CTkLabel(input_frame, text="出力先:").grid(row=1, column=0, padx=6, pady=6, sticky="e")
        self.output_dir_var = customtkinter.StringVar(value=self.settings.last_output_dir)
        customtkinter.CTkEntry(input_frame, textvariable=self.output_dir_var).grid(
            row=1, column=1, columnspan=3, sticky="ew", padx=6, pady=6
        )
        customtkinter.CTkButton(input_frame, text="参照", width=70, command=self._select_output_dir).grid(
            row=1, column=4, padx=6, pady=6
        )

        size_frame = customtkinter.CTkFrame(self)
        size_frame.grid(row=1, column=0, sticky="ew", padx=12, pady=6)
        self.mode_var = customtkinter.StringVar(value=_MODE_LABELS[self.settings.mode])
        customtkinter.CTkSegmentedButton(
            size_frame,
            values=list(_MODE_LABELS.values()),
            variable=self.mode_var,
            command=lambda _value: self._apply_mode(),
        ).grid(row=0, column=0, padx=6, pady=6)

        preset_labels = list(self._preset_by_label)
        saved_preset = self.catalog.get(self.settings.preset_name)
        initial_preset = saved_preset or self.catalog.default
        self.preset_var = customtkinter.StringVar(value=build_preset_label(initial_preset))
        self.preset_menu = customtkinter.CTkOptionMenu(
            size_frame, values=preset_labels, variable=self.preset_var, width=240
        )
        self.preset_menu.grid(row=0, column=1, padx=6, pady=6)

        self.width_var = customtkinter.StringVar(value=self.settings.custom_width)
        self.height_var = customtkinter.StringVar(value=self.settings.custom_height)
        self.width_entry = customtkinter.CTkEntry(size_frame, textvariable=self.width_var, width=80, placeholder_text="幅")
        self.width_entry.grid(row=0, column=2, padx=(12, 2), pady=6)
        customtkinter.CTkLabel(size_frame, text="x").grid(row=0, column=3)
        self.height_entry = customtkinter.CTkEntry(
            size_frame, textvariable=self.height_var, width=80, placeholder_text="高さ"
        )
        self.height_entry.grid(row=0, column=4, padx=(2, 6), pady=6)
        self.aspect_var = customtkinter.BooleanVar(value=self.settings.maintain_aspect_ratio)
        self.aspect_check = customtkinter.CTkCheckBox(size_frame, text="アスペクト比を維持", variable=self.aspect_var)
        self.aspect_check.grid(row=0, column=5, padx=6, pady=6)

        options_frame = customtkinter.CTkFrame(self)
        options_frame.grid(row=2, column=0, sticky="ew", padx=12, pady=6)
        customtkinter.CTkLabel(options_frame, text="品質:").grid(row=0, column=0, padx=(6, 2), pady=6)
        self.quality_var = customtkinter.StringVar(value=self.settings.quality)
        customtkinter.CTkEntry(options_frame, textvariable=self.quality_var, width=60).grid(row=0, column=1, pady=6)
        customtkinter.CTkLabel(options_frame, text="ワーカー数:").grid(row=0, column=2, padx=(12, 2), pady=6)
        self.workers_var = customtkinter.StringVar(value=self.settings.workers or str(default_worker_count()))
        customtkinter.CTkEntry(options_frame, textvariable=self.workers_var, width=60).grid(row=0, column=3, pady=6)
        self.exif_var = customtkinter.BooleanVar(value=self.settings.keep_exif)
        customtkinter.CTkCheckBox(options_frame, text="EXIFを保持", variable=self.exif_var).grid(
            row=0, column=4, padx=12, pady=6
        )
        self.dry_run_var = customtkinter.BooleanVar(value=self.settings.dry_run)
        customtkinter.CTkCheckBox(options_frame, text="ドライラン", variable=self.dry_run_var).grid(
            row=0, column=5, padx=6, pady=6
        )

        action_frame = customtkinter.CTkFrame(self)
        action_frame.grid(row=3, column=0, sticky="ew", padx=12, pady=6)
        action_frame.grid_columnconfigure(2, weight=1)
        self.start_button = customtkinter.CTkButton(action_frame, text="一括リサイズ", command=self._start_batch)
        self.start_button.grid(row=0, column=0, padx=6, pady=6)
        self.cancel_button = customtkinter.CTkButton(
            action_frame, text="キャンセル", width=100, state="disabled", command=self._cancel_batch
        )
        self.cancel_button.grid(row=0, column=1, padx=6, pady=6)
        self.progress_bar = customtkinter.CTkProgressBar(action_frame, height=16)
        self.progress_bar.set(0)
        self.progress_bar.grid(row=0, column=2, sticky="ew", padx=6, pady=6)
        self.status_var = customtkinter.StringVar(value="待機中")
        customtkinter.CTkLabel(action_frame, textvariable=self.status_var, anchor="w").grid(
            row=1, column=0, columnspan=3, sticky="ew", padx=6, pady=(0, 6)
        )

        self.log_box = customtkinter.CTkTextbox(self, wrap="none")
        self.log_box.grid(row=4, column=0, sticky="nsew", padx=12, pady=(6, 12))
        self.log_box.configure(state="disabled")

    def _apply_mode(self) -> None:
        is_preset = self._current_mode() == MODE_PRESET
        self.preset_menu.configure(state="normal" if is_preset else "disabled")
        custom_state = "disabled" if is_preset else "normal"
        for widget in (self.width_entry, self.height_entry, self.aspect_check):
            widget.configure(state=custom_state)

    def _current_mode(self) -> str:
        return MODE_CUSTOM if self.mode_var.get() == _MODE_LABELS[MODE_CUSTOM] else MODE_PRESET

    # ------------------------------------------------------------------
    # 入力選択
    # ------------------------------------------------------------------
    def _select_files(self) -> None:
        patterns = " ".join(f"*{ext}" for ext in supported_extensions())
        selected = filedialog.askopenfilenames(
            title="画像を選択",
            initialdir=self.settings.last_input_dir or None,
            filetypes=[("画像", patterns), ("すべて", "*.*")],
        )
        if not selected:
            return
        paths = [Path(p) for p in selected]
        self.settings.last_input_dir = str(paths[0].parent)
        self._add_inputs(paths)

    def _select_folder(self) -> None:
        folder = filedialog.askdirectory(
            title="画像フォルダーを選択", initialdir=self.settings.last_input_dir or None
        )
        if not folder:
            return
        found, _missing = discover_image_paths([folder])
        self.settings.last_input_dir = folder
        if not found:
            messagebox.showinfo("情報", "フォルダーに対応形式の画像がありません")
            return
        self._add_inputs(found)

    def _add_inputs(self, paths: List[Path]) -> None:
        self.input_paths.extend(paths)
        self.input_count_var.set(f"{len(self.input_paths)}件の画像を選択中")
        self._append_log(f"{len(paths)}件追加しました")

    def _clear_inputs(self) -> None:
        self.input_paths = []
        self.input_count_var.set("画像が選択されていません")

    def _select_output_dir(self) -> None:
        folder = filedialog.askdirectory(
            title="出力フォルダーを選択", initialdir=self.output_dir_var.get() or None
        )
        if folder:
            self.output_dir_var.set(folder)

    # ------------------------------------------------------------------
    # バッチ実行
    # ------------------------------------------------------------------
    def _collect_spec(self) -> ResizeSpec:
        if self._current_mode() == MODE_PRESET:
            return PresetSpec(self._preset_by_label.get(self.preset_var.get(), self.preset_var.get()))
        return ValueValidator.build_custom_spec(self.width_var.get(), self.height_var.get(), self.aspect_var.get())

    def _start_batch(self) -> None:
        if self._worker_thread is not None:
            return
        if not self.input_paths:
            messagebox.showwarning("警告", "画像が選択されていません。")
            return
        try:
            output_dir = PathValidator.validate_output_dir(self.output_dir_var.get())
            spec = self._collect_spec()
            options = EncodeOptions(
                quality=ValueValidator.validate_quality(self.quality_var.get()),
                keep_exif=self.exif_var.get(),
                dry_run=self.dry_run_var.get(),
            )
            workers = ValueValidator.validate_workers(self.workers_var.get())
        except ValueError as e:
            messagebox.showerror("入力エラー", str(e))
            return

        self._save_settings()
        self._runner = BatchRunner(max_workers=workers, options=options)
        self.progress_bar.set(0)
        self.status_var.set("ジョブを準備しています...")
        self.start_button.configure(state="disabled")
        self.cancel_button.configure(state="normal")
        self._worker_thread = threading.Thread(
            target=self._run_in_background,
            args=(self._runner, list(self.input_paths), output_dir, spec),
            daemon=True,
            name="batch-resizer-gui",
        )
        self._worker_thread.start()
        self.after(POLL_INTERVAL_MS, self._poll_events)

    def _run_in_background(self, runner: BatchRunner, paths: List[Path], output_dir: Path, spec: ResizeSpec) -> None:
        try:
            jobs = enumerate_jobs(paths, output_dir, spec, self.catalog)
        except (ResizeError, ValueError) as e:
            self._events.put(("error", describe_error(e)))
            return
        if runner.cancelled:
            logger.info("準備中にキャンセルされたため、全ジョブを未処理として扱います")
        self._events.put(("start", (len(jobs), jobs[0].target)))
        try:
            report = runner.run(jobs, on_outcome=lambda outcome: self._events.put(("outcome", outcome)))
        except Exception as e:
            logger.exception("バッチ処理中に想定外のエラー")
            self._events.put(("error", describe_error(e)))
            return
        record_run_summary(report, frontend="gui", output=output_dir, dry_run=runner.options.dry_run)
        self._events.put(("done", report))

    def _cancel_batch(self) -> None:
        if self._runner is not None:
            self._runner.cancel()
            self.cancel_button.configure(state="disabled")
            self.status_var.set("キャンセルしています（実行中の画像は最後まで処理します）")

    def _poll_events(self) -> None:
        while True:
            try:
                kind, payload = self._events.get_nowait()
            except queue.Empty:
                break
            if kind == "start":
                count, target = payload
                self._append_log(f"{count}件の処理を開始します {build_target_summary_text(target)}")
            elif kind == "outcome":
                self._on_outcome(payload)
            elif kind == "error":
                self._finish_run()
                messagebox.showerror("エラー", payload)
                return
            elif kind == "done":
                self._finish_run()
                self._show_report(payload)
                return
        if self._runner is not None:
            snapshot = self._runner.progress.snapshot()
            self.progress_bar.set(snapshot.fraction)
            self.status_var.set(build_progress_text(snapshot))
        self.after(POLL_INTERVAL_MS, self._poll_events)

    def _on_outcome(self, outcome: ResizeOutcome) -> None:
        self._append_log(build_outcome_line(outcome))

    def _finish_run(self) -> None:
        self._worker_thread = None
        self.start_button.configure(state="normal")
        self.cancel_button.configure(state="disabled")

    def _show_report(self, report: BatchReport) -> None:
        self.progress_bar.set(1.0 if not report.cancelled else report.processed / max(report.total, 1))
        summary = build_completion_text(
            succeeded=report.succeeded,
            failed=report.failed,
            skipped=len(report.skipped_jobs),
            cancelled=report.cancelled,
        )
        self.status_var.set(summary)
        self._append_log(summary)
        if report.failed:
            text = build_failure_report_text(
                title="一括リサイズ",
                summary_text=summary,
                outcomes=report.outcomes,
                preview_limit=FAILURE_PREVIEW_LIMIT,
            )
            messagebox.showwarning("処理結果", text)
        else:
            messagebox.showinfo("処理結果", summary)

    def _append_log(self, line: str) -> None:
        self.log_box.configure(state="normal")
        self.log_box.insert("end", f"{line}\n")
        self.log_box.see("end")
        self.log_box.configure(state="disabled")

    # ------------------------------------------------------------------
    # 設定・終了
    # ------------------------------------------------------------------
    def _collect_settings(self) -> GuiSettings:
        return replace(
            self.settings,
            mode=self._current_mode(),
            preset_name=self._preset_by_label.get(self.preset_var.get(), ""),
            custom_width=self.width_var.get(),
            custom_height=self.height_var.get(),
            maintain_aspect_ratio=bool(self.aspect_var.get()),
            quality=self.quality_var.get(),
            workers=self.workers_var.get(),
            keep_exif=bool(self.exif_var.get()),
            dry_run=bool(self.dry_run_var.get()),
            last_output_dir=self.output_dir_var.get(),
            window_geometry=self.geometry(),
        )

    def _save_settings(self) -> None:
        self.settings = self._collect_settings()
        try:
            self.settings_store.save(self.settings)
        except ResizeError as e:
            logger.warning(f"設定を保存できません: {describe_error(e)}")

    def _on_close(self) -> None:
        if self._runner is not None and self._worker_thread is not None:
            self._runner.cancel()
        self._save_settings()
        self.destroy()


def main() -> None:
    """Launch the GUI application."""
    log_dir: Optional[Path] = resolve_log_dir()
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning(f"ログの保存先を用意できません: {describe_error(e)}")
        log_dir = None
    setup_logging(log_dir=log_dir)
    customtkinter.set_appearance_mode("system")
    BatchResizerApp().mainloop()


if __name__ == "__main__":
    main()
