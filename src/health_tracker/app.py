"""App Kivy: formulario diario, tablero y exportes sobre el RecordStore."""

from __future__ import annotations

import traceback
from collections.abc import Mapping
from datetime import datetime

from health_tracker import dates
from health_tracker.cli import open_store
from health_tracker.config import TrackerConfig, load_config
from health_tracker.dashboard import dashboard_text, entries_table
from health_tracker.export import ReportLayout, write_csv, write_report_xlsx
from health_tracker.model import Entry

# (form key, label, converter); converter None means free text
FORM_FIELDS: tuple[tuple[str, str, type | None], ...] = (
    ("date", "Fecha (YYYY-MM-DD)", None),
    ("steps", "Pasos", int),
    ("heartRate", "Pulso (bpm)", int),
    ("sleep", "Sueño (horas)", float),
    ("water", "Agua (vasos)", int),
    ("calories", "Calorías", int),
    ("mood", "Ánimo", None),
    ("notes", "Notas", None),
)


def entry_from_form(values: Mapping[str, str]) -> Entry:
    """Build an entry from raw form texts; blank fields are left out.

    Raises:
        ValueError: If the date or a numeric field can't be parsed.
    """
    raw_date = values.get("date", "").strip()
    day = dates.parse_day(raw_date) if raw_date else dates.today()
    entry: Entry = {"date": day.isoformat()}
    for key, label, convert in FORM_FIELDS[1:]:
        text = values.get(key, "").strip()
        if not text:
            continue
        if convert is None:
            entry[key] = text
            continue
        try:
            entry[key] = convert(text.replace(",", "."))
        except ValueError as exc:
            raise ValueError(f"{label}: valor invalido {text!r}") from exc
    return entry


def run_app(config: TrackerConfig | None = None) -> int:
    """Lanza la app Kivy."""
    from kivy.app import App
    from kivy.core.window import Window
    from kivy.resources import resource_find
    from kivy.uix.boxlayout import BoxLayout
    from kivy.uix.button import Button
    from kivy.uix.gridlayout import GridLayout
    from kivy.uix.label import Label
    from kivy.uix.tabbedpanel import TabbedPanel, TabbedPanelItem
    from kivy.uix.textinput import TextInput

    tracker_config = config or load_config()

    class HealthTrackerApp(App):
        """Main Kivy app."""

        def __init__(self, **kwargs: object) -> None:
            super().__init__(**kwargs)
            self.store = open_store(tracker_config)
            self.inputs: dict[str, TextInput] = {}
            self.dashboard: TextInput | None = None
            self.history: TextInput | None = None
            self.status: Label | None = None
            self._mono_font = resource_find("data/fonts/RobotoMono-Regular.ttf")

        def build(self) -> BoxLayout:
            Window.bind(on_key_down=self._on_key_down)

            root = BoxLayout(orientation="vertical", spacing=8, padding=10)
            panel = TabbedPanel(do_default_tab=False)
            panel.add_widget(self._build_entry_tab())
            panel.add_widget(self._build_dashboard_tab())
            panel.add_widget(self._build_history_tab())
            root.add_widget(panel)

            self.status = Label(text="", size_hint_y=None, height=30)
            root.add_widget(self.status)
            self._refresh()
            return root

        def _build_entry_tab(self) -> TabbedPanelItem:
            tab = TabbedPanelItem(text="Registrar")
            box = BoxLayout(orientation="vertical", spacing=8, padding=8)
            grid = GridLayout(cols=2, spacing=4, size_hint_y=None)
            grid.bind(minimum_height=grid.setter("height"))
            for key, label, _ in FORM_FIELDS:
                grid.add_widget(Label(text=label, size_hint_y=None, height=34))
                initial = dates.today().isoformat() if key == "date" else ""
                inp = TextInput(text=initial, multiline=False, size_hint_y=None, height=34)
                self.inputs[key] = inp
                grid.add_widget(inp)
            box.add_widget(grid)

            actions = BoxLayout(orientation="horizontal", spacing=8, size_hint_y=None, height=40)
            save_btn = Button(text="Guardar")
            load_btn = Button(text="Cargar día")
            delete_btn = Button(text="Borrar día")
            save_btn.bind(on_press=self._on_save)
            load_btn.bind(on_press=self._on_load_day)
            delete_btn.bind(on_press=self._on_delete)
            actions.add_widget(save_btn)
            actions.add_widget(load_btn)
            actions.add_widget(delete_btn)
            box.add_widget(actions)
            tab.add_widget(box)
            return tab

        def _build_dashboard_tab(self) -> TabbedPanelItem:
            tab = TabbedPanelItem(text="Tablero")
            box = BoxLayout(orientation="vertical", spacing=8, padding=8)
            self.dashboard = self._readonly_text()
            box.add_widget(self.dashboard)

            actions = BoxLayout(orientation="horizontal", spacing=8, size_hint_y=None, height=40)
            csv_btn = Button(text="Exportar CSV")
            xlsx_btn = Button(text="Reporte Excel")
            exit_btn = Button(text="Salir")
            csv_btn.bind(on_press=self._on_export_csv)
            xlsx_btn.bind(on_press=self._on_export_xlsx)
            exit_btn.bind(on_press=lambda *_args: self.stop())
            actions.add_widget(csv_btn)
            actions.add_widget(xlsx_btn)
            actions.add_widget(exit_btn)
            box.add_widget(actions)
            tab.add_widget(box)
            return tab

        def _build_history_tab(self) -> TabbedPanelItem:
            tab = TabbedPanelItem(text="Historial")
            self.history = self._readonly_text()
            tab.add_widget(self.history)
            return tab

        def _readonly_text(self) -> TextInput:
            widget = TextInput(readonly=True, text="", multiline=True, do_wrap=False)
            if self._mono_font:
                widget.font_name = self._mono_font
            return widget

        def _on_key_down(
            self,
            _window: object,
            keycode: int,
            _scancode: int,
            _text: str,
            _modifiers: list[str],
        ) -> bool:
            # Esc: salir de fullscreen o cerrar app.
            if keycode != 27:
                return False
            if Window.fullscreen:
                Window.fullscreen = False
            else:
                self.stop()
            return True

        def _form_values(self) -> dict[str, str]:
            return {key: inp.text for key, inp in self.inputs.items()}

        def _on_save(self, _: object) -> None:
            try:
                entry = entry_from_form(self._form_values())
            except ValueError as exc:
                self._set_status(f"Error: {exc}")
                return
            result = self.store.save_entry(entry)
            if not result:
                self._set_status(f"Error al guardar: {result.message}")
                return
            self._set_status(f"Entrada guardada: {entry['date']}")
            self._refresh()

        def _on_load_day(self, _: object) -> None:
            entry = self.store.get_entry_by_date(self.inputs["date"].text.strip())
            if entry is None:
                self._set_status("No hay entrada para esa fecha.")
                return
            for key, inp in self.inputs.items():
                value = entry.get(key)
                inp.text = "" if value is None else str(value)

        def _on_delete(self, _: object) -> None:
            result = self.store.delete_entry(self.inputs["date"].text.strip())
            self._set_status(result.message or ("Entrada borrada" if result else ""))
            self._refresh()

        def _on_export_csv(self, _: object) -> None:
            out_path = tracker_config.export_dir / f"health-data_{_timestamp()}.csv"
            try:
                written = write_csv(self.store.get_entries(), out_path)
            except Exception as exc:
                self._show_error("exportar", exc)
                return
            self._set_status(
                f"CSV generado: {out_path}" if written else "No hay datos para exportar."
            )

        def _on_export_xlsx(self, _: object) -> None:
            out_path = tracker_config.export_dir / f"health-report_{_timestamp()}.xlsx"
            try:
                write_report_xlsx(
                    self.store.get_all() or {},
                    self.store.get_last_n_days(7),
                    out_path,
                    ReportLayout(),
                )
            except Exception as exc:
                self._show_error("exportar", exc)
                return
            self._set_status(f"Excel generado: {out_path}")

        def _refresh(self) -> None:
            entries = self.store.get_entries()
            if self.dashboard is not None:
                self.dashboard.text = dashboard_text(entries, self.store.get_goals())
            if self.history is not None:
                self.history.text = entries_table(entries)

        def _set_status(self, text: str) -> None:
            if self.status is not None:
                self.status.text = text

        def _show_error(self, action: str, exc: Exception) -> None:
            error_type = type(exc).__name__
            self._set_status(f"Error al {action} ({error_type}): {exc}")
            if self.dashboard is not None:
                self.dashboard.text = traceback.format_exc()

    HealthTrackerApp().run()
    return 0


def _timestamp() -> str:
    return datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
