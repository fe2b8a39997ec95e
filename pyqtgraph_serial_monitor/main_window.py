# main_window.py
import logging
from typing import List, Optional, Tuple

import pyqtgraph as pg
from PySide6 import QtWidgets, QtCore, QtGui

from .config import (
    BAUD_RATES, DATA_BITS, LINE_WIDTH, MARKER_COLOR, NO_PORT, STOP_BITS, TARGET_HZ,
)
from .errors import SerialMonitorError
from .models import FlowControl, Parity, PlotMode, ScaleMode, StartModeKind
from .session import Notification, SessionController, Severity

LOG = logging.getLogger(__name__)


def _enum_combo(enum_cls) -> QtWidgets.QComboBox:
    combo = QtWidgets.QComboBox()
    for member in enum_cls:
        combo.addItem(member.value, userData=member)
    return combo


class PlotPanel:
    """One pyqtgraph plot bound to a PlotData entry by position."""

    def __init__(self, window: "MonitorWindow", index: int):
        self.window = window
        self.index = index
        plot_data = window.session.plots[index]

        self.widget = pg.PlotWidget()
        self.widget.setMinimumHeight(int(plot_data.height))
        self.widget.showGrid(x=True, y=True, alpha=0.25)
        self.widget.addLegend()
        self.widget.setLabel("bottom", "Time (s)")

        self.marker = pg.InfiniteLine(angle=90, movable=False, pen=pg.mkPen(MARKER_COLOR, width=1))
        self.marker.setVisible(False)
        self.widget.addItem(self.marker)

        self.curves: List[pg.PlotDataItem] = []

    def _ensure_curves(self, count: int):
        session = self.window.session
        hidden = session.plots[self.index].hidden
        while len(self.curves) < count:
            i = len(self.curves)
            slot = session.input_slots[i] if i < len(session.input_slots) else None
            name = slot.name if slot else f"Slot {i + 1}"
            color = slot.rgb255() if slot else (127, 127, 127)
            curve = self.widget.plot(pen=pg.mkPen(color=color, width=LINE_WIDTH), name=name)
            curve.setClipToView(True)
            curve.setVisible(i not in hidden)
            # legend clicks toggle visibility; feed that back into AutoMax
            curve.visibleChanged.connect(lambda c=curve, idx=i: self._on_visible(idx, c))
            self.curves.append(curve)

    def _on_visible(self, slot_index: int, curve: pg.PlotDataItem):
        self.window.session.set_hidden(self.index, slot_index, not curve.isVisible())

    def clear(self):
        for curve in self.curves:
            self.widget.removeItem(curve)
        self.curves = []
        legend = self.widget.plotItem.legend
        if legend is not None:
            legend.clear()

    def redraw(self):
        view = self.window.session.plot_view(self.index)
        if len(view.curves) < len(self.curves):
            self.clear()
        self._ensure_curves(len(view.curves))

        for c, curve in zip(view.curves, self.curves):
            curve.setData(c.t, c.y)

        if view.y_bounds is not None:
            self.widget.enableAutoRange(axis="y", enable=False)
            self.widget.setYRange(*view.y_bounds, padding=0)
        else:
            self.widget.enableAutoRange(axis="y", enable=True)
        self.widget.enableAutoRange(axis="x", enable=True)

        if view.marker_x is not None:
            self.marker.setPos(view.marker_x)
            self.marker.setVisible(True)
        else:
            self.marker.setVisible(False)


class MonitorWindow(QtWidgets.QMainWindow):
    def __init__(self, session: Optional[SessionController] = None):
        super().__init__()
        self.setWindowTitle("Serial Monitor → PyQtGraph")
        pg.setConfigOptions(antialias=False, useOpenGL=False)

        self.session = session or SessionController()
        self.panels: List[PlotPanel] = []
        self.frames: List[QtWidgets.QWidget] = []
        self.plot_buttons: List[Tuple[QtWidgets.QPushButton, QtWidgets.QPushButton]] = []
        self.console: Optional[QtWidgets.QPlainTextEdit] = None
        self._console_tail = None
        self._ticks = 0

        central = QtWidgets.QWidget()
        vbox = QtWidgets.QVBoxLayout(central)
        vbox.setContentsMargins(8, 8, 8, 8)
        self.setCentralWidget(central)

        vbox.addWidget(self._build_conn_bar())
        vbox.addWidget(self._build_start_bar())
        vbox.addWidget(self._build_plot_bar())

        self.values_label = QtWidgets.QLabel("")
        vbox.addWidget(self.values_label)

        scroll = QtWidgets.QScrollArea()
        scroll.setWidgetResizable(True)
        self.plot_area = QtWidgets.QWidget()
        self.plot_layout = QtWidgets.QVBoxLayout(self.plot_area)
        self.plot_layout.setContentsMargins(0, 0, 0, 0)
        scroll.setWidget(self.plot_area)
        vbox.addWidget(scroll, 1)

        # --- Status bar ---
        self.sb = self.statusBar()

        # --- File menu ---
        file_menu = self.menuBar().addMenu("&File")
        open_act = QtGui.QAction("Open config…", self)
        open_act.setShortcut(QtGui.QKeySequence.Open)
        open_act.triggered.connect(self._open_config_dialog)
        file_menu.addAction(open_act)
        save_act = QtGui.QAction("Save config…", self)
        save_act.setShortcut(QtGui.QKeySequence.Save)
        save_act.triggered.connect(self._save_config_dialog)
        file_menu.addAction(save_act)

        QtGui.QShortcut(QtGui.QKeySequence(QtCore.Qt.Key_P), self, activated=self._toggle_pause)

        self._load_controls()
        self._connect_controls()
        self._rebuild_plots()
        self.populate_ports()
        self._sync_controls()

        # --- Timer for polling + redraws ---
        self.timer = QtCore.QTimer(self)
        self.timer.timeout.connect(self._tick)
        self.timer.start(int(1000 / TARGET_HZ))

    # ---------- Control bars ----------
    def _build_conn_bar(self) -> QtWidgets.QWidget:
        bar = QtWidgets.QWidget()
        h = QtWidgets.QHBoxLayout(bar)
        h.setContentsMargins(0, 0, 0, 4)

        self.port_combo = QtWidgets.QComboBox()
        self.refresh_btn = QtWidgets.QPushButton("Refresh")
        self.baud_combo = QtWidgets.QComboBox()
        for b in BAUD_RATES:
            self.baud_combo.addItem(str(b))
        self.bits_combo = QtWidgets.QComboBox()
        for b in DATA_BITS:
            self.bits_combo.addItem(str(b))
        self.parity_combo = _enum_combo(Parity)
        self.stop_combo = QtWidgets.QComboBox()
        for b in STOP_BITS:
            self.stop_combo.addItem(str(b))
        self.flow_combo = _enum_combo(FlowControl)
        self.dtr_check = QtWidgets.QCheckBox("DTR")
        self.connect_btn = QtWidgets.QPushButton("Connect")

        for label, w, stretch in [("Port:", self.port_combo, 2), (None, self.refresh_btn, 0),
                                  ("Baud:", self.baud_combo, 0), ("Bits:", self.bits_combo, 0),
                                  ("Parity:", self.parity_combo, 0), ("Stop:", self.stop_combo, 0),
                                  ("Flow:", self.flow_combo, 0), (None, self.dtr_check, 0),
                                  (None, self.connect_btn, 0)]:
            if label:
                h.addWidget(QtWidgets.QLabel(label))
            h.addWidget(w, stretch)
        return bar

    def _build_start_bar(self) -> QtWidgets.QWidget:
        bar = QtWidgets.QWidget()
        h = QtWidgets.QHBoxLayout(bar)
        h.setContentsMargins(0, 0, 0, 4)

        self.start_combo = _enum_combo(StartModeKind)
        self.delay_spin = QtWidgets.QSpinBox()
        self.delay_spin.setRange(0, 600_000)
        self.delay_spin.setSuffix(" ms")
        self.msg_edit = QtWidgets.QLineEdit()

        h.addWidget(QtWidgets.QLabel("Start:"))
        h.addWidget(self.start_combo)
        h.addWidget(self.delay_spin)
        h.addWidget(self.msg_edit, 1)
        return bar

    def _build_plot_bar(self) -> QtWidgets.QWidget:
        bar = QtWidgets.QWidget()
        h = QtWidgets.QHBoxLayout(bar)
        h.setContentsMargins(0, 0, 0, 4)

        self.mode_combo = _enum_combo(PlotMode)
        self.window_spin = QtWidgets.QDoubleSpinBox()
        self.window_spin.setRange(0.1, 3600.0)
        self.window_spin.setSuffix(" s")
        self.scale_combo = _enum_combo(ScaleMode)
        self.ymin_spin = QtWidgets.QDoubleSpinBox()
        self.ymin_spin.setRange(-1e9, 1e9)
        self.ymin_spin.setDecimals(3)
        self.ymax_spin = QtWidgets.QDoubleSpinBox()
        self.ymax_spin.setRange(-1e9, 1e9)
        self.ymax_spin.setDecimals(3)
        self.add_plot_btn = QtWidgets.QPushButton("Add plot")
        self.add_console_btn = QtWidgets.QPushButton("Add console")

        for label, w in [("Mode:", self.mode_combo), ("Window:", self.window_spin),
                         ("Scale:", self.scale_combo), ("Min:", self.ymin_spin),
                         ("Max:", self.ymax_spin), (None, self.add_plot_btn),
                         (None, self.add_console_btn)]:
            if label:
                h.addWidget(QtWidgets.QLabel(label))
            h.addWidget(w)
        h.addStretch(1)
        return bar

    def _value_widgets(self):
        return (self.port_combo, self.baud_combo, self.bits_combo, self.parity_combo,
                self.stop_combo, self.flow_combo, self.dtr_check, self.start_combo,
                self.delay_spin, self.msg_edit, self.mode_combo, self.window_spin,
                self.scale_combo, self.ymin_spin, self.ymax_spin)

    def _load_controls(self):
        """Copy the session's config into the widgets without triggering the change handlers."""
        conn = self.session.data.conn_config
        pc = self.session.data.plot_config
        for w in self._value_widgets():
            w.blockSignals(True)
        self.baud_combo.setCurrentText(str(conn.baud_rate))
        self.bits_combo.setCurrentText(str(conn.data_bits))
        self.parity_combo.setCurrentIndex(self.parity_combo.findData(conn.parity))
        self.stop_combo.setCurrentText(str(conn.stop_bits))
        self.flow_combo.setCurrentIndex(self.flow_combo.findData(conn.flow_ctrl))
        self.dtr_check.setChecked(conn.dtr)
        self.start_combo.setCurrentIndex(self.start_combo.findData(conn.start_kind))
        self.delay_spin.setValue(conn.start_delay_ms)
        self.msg_edit.setText(conn.start_msg)
        self.mode_combo.setCurrentIndex(self.mode_combo.findData(pc.mode))
        self.window_spin.setValue(pc.window)
        self.scale_combo.setCurrentIndex(self.scale_combo.findData(pc.scale_mode))
        self.ymin_spin.setValue(pc.y_min)
        self.ymax_spin.setValue(pc.y_max)
        for w in self._value_widgets():
            w.blockSignals(False)

    def _connect_controls(self):
        self.refresh_btn.clicked.connect(self.populate_ports)
        self.connect_btn.clicked.connect(self.toggle_connection)
        for combo in (self.port_combo, self.baud_combo, self.bits_combo, self.parity_combo,
                      self.stop_combo, self.flow_combo, self.start_combo):
            combo.currentIndexChanged.connect(self._read_conn_controls)
        self.dtr_check.toggled.connect(self._read_conn_controls)
        self.delay_spin.valueChanged.connect(self._read_conn_controls)
        self.msg_edit.textChanged.connect(self._read_conn_controls)

        for combo in (self.mode_combo, self.scale_combo):
            combo.currentIndexChanged.connect(self._read_plot_controls)
        for spin in (self.window_spin, self.ymin_spin, self.ymax_spin):
            spin.valueChanged.connect(self._read_plot_controls)
        self.add_plot_btn.clicked.connect(self._add_plot)
        self.add_console_btn.clicked.connect(self._add_console)

    def _read_conn_controls(self, *_):
        conn = self.session.data.conn_config
        conn.port = self.port_combo.currentData() or NO_PORT
        conn.baud_rate = int(self.baud_combo.currentText())
        conn.data_bits = int(self.bits_combo.currentText())
        conn.parity = self.parity_combo.currentData()
        conn.stop_bits = int(self.stop_combo.currentText())
        conn.flow_ctrl = self.flow_combo.currentData()
        conn.dtr = self.dtr_check.isChecked()
        conn.start_kind = self.start_combo.currentData()
        conn.start_delay_ms = self.delay_spin.value()
        conn.start_msg = self.msg_edit.text()
        self.delay_spin.setVisible(conn.start_kind is StartModeKind.DELAY)
        self.msg_edit.setVisible(conn.start_kind is StartModeKind.MESSAGE)
        if not self.session.is_connected():
            self.connect_btn.setEnabled(self.session.can_connect())

    def _read_plot_controls(self, *_):
        pc = self.session.data.plot_config
        pc.mode = self.mode_combo.currentData()
        pc.window = self.window_spin.value()
        pc.scale_mode = self.scale_combo.currentData()
        # min <= max is kept here; the windowing code trusts these values
        pc.y_min = min(self.ymin_spin.value(), self.ymax_spin.value())
        pc.y_max = max(self.ymin_spin.value(), self.ymax_spin.value())
        manual = pc.scale_mode is ScaleMode.MANUAL
        self.ymin_spin.setEnabled(manual)
        self.ymax_spin.setEnabled(manual)

    # ---------- Connection ----------
    def populate_ports(self):
        selected = self.session.data.conn_config.port
        ports = self.session.refresh_devices()
        self.port_combo.blockSignals(True)
        self.port_combo.clear()
        self.port_combo.addItem(NO_PORT, userData=None)
        for p in ports:
            self.port_combo.addItem(p, userData=p)
        idx = self.port_combo.findData(selected)
        self.port_combo.setCurrentIndex(max(idx, 0))
        self.port_combo.blockSignals(False)
        self._read_conn_controls()
        self.sb.showMessage(f"Found {len(ports)} port(s)")

    def toggle_connection(self):
        if self.session.is_connected():
            self.session.disconnect()
            for panel in self.panels:
                panel.clear()
            self.sb.showMessage("Disconnected")
        else:
            self._read_conn_controls()
            try:
                self.session.connect()
            except SerialMonitorError as e:
                LOG.error("Connect failed: %s", e)
                self._notify(Notification.error(str(e)))
            else:
                self.sb.showMessage(f"Connected to {self.session.data.conn_config.port}")
        self._sync_controls()

    def _sync_controls(self):
        connected = self.session.is_connected()
        pg.setConfigOptions(antialias=not connected)  # fast while streaming
        self.connect_btn.setText("Disconnect" if connected else "Connect")
        self.connect_btn.setEnabled(connected or self.session.can_connect())
        for w in (self.port_combo, self.refresh_btn, self.baud_combo, self.bits_combo,
                  self.parity_combo, self.stop_combo, self.flow_combo, self.dtr_check,
                  self.start_combo, self.delay_spin, self.msg_edit):
            w.setEnabled(not connected)
        self._read_conn_controls()
        self._read_plot_controls()

    def _notify(self, note: Notification):
        prefix = "ERROR: " if note.severity is Severity.ERROR else ""
        self.sb.showMessage(prefix + note.message, int(note.duration_s * 1000))

    # ---------- Plots ----------
    def _rebuild_plots(self):
        for frame in self.frames:
            frame.setParent(None)
        self.frames = []
        self.plot_buttons = []
        self.panels = []
        self.console = None
        self._console_tail = None

        for i, plot in enumerate(self.session.plots):
            if plot.console:
                self.console = QtWidgets.QPlainTextEdit()
                self.console.setReadOnly(True)
                self.console.setMinimumHeight(int(plot.height))
                body = self.console
            else:
                panel = PlotPanel(self, i)
                self.panels.append(panel)
                body = panel.widget
            self.plot_layout.addWidget(self._framed(i, plot.name, body))
        self.add_console_btn.setEnabled(not self.session.has_console())

    def _framed(self, index: int, title: str, body: QtWidgets.QWidget) -> QtWidgets.QWidget:
        """Header row with Reset/Remove above a plot or the console."""
        frame = QtWidgets.QWidget()
        v = QtWidgets.QVBoxLayout(frame)
        v.setContentsMargins(0, 0, 0, 4)
        header = QtWidgets.QHBoxLayout()
        reset_btn = QtWidgets.QPushButton("Reset")
        remove_btn = QtWidgets.QPushButton("Remove")
        reset_btn.clicked.connect(lambda _=False, i=index: self._reset_plot(i))
        remove_btn.clicked.connect(lambda _=False, i=index: self._remove_plot(i))
        header.addWidget(QtWidgets.QLabel(title))
        header.addStretch(1)
        header.addWidget(reset_btn)
        header.addWidget(remove_btn)
        v.addLayout(header)
        v.addWidget(body)

        self.frames.append(frame)
        self.plot_buttons.append((reset_btn, remove_btn))
        return frame

    def _reset_plot(self, index: int):
        self.session.reset_plot(index)
        self.sb.showMessage(f"Reset {self.session.plots[index].name}", 2000)

    def _remove_plot(self, index: int):
        self.session.remove_plot(index)
        self._rebuild_plots()

    def _add_plot(self):
        self.session.add_plot()
        self._rebuild_plots()

    def _add_console(self):
        self.session.add_console()
        self._rebuild_plots()

    # ---------- Polling & drawing ----------
    def _tick(self):
        self._ticks += 1
        if not self.session.is_connected() and self._ticks % TARGET_HZ == 0:
            self.session.refresh_devices()

        was_connected = self.session.is_connected()
        for note in self.session.poll():
            self._notify(note)
        if was_connected and not self.session.is_connected():
            for panel in self.panels:
                panel.clear()
            self._sync_controls()
        if self.session.data.conn_config.port == NO_PORT and self.port_combo.currentData() is not None:
            self.populate_ports()
        self._redraw()

    def _redraw(self):
        for panel in self.panels:
            panel.redraw()

        slots = self.session.input_slots
        self.values_label.setText("  |  ".join(f"{s.name}: {s.value:.3f}" for s in slots))

        if self.console is not None:
            lines = self.session.console_lines
            tail = (len(lines), lines[-1] if lines else None)
            if tail != self._console_tail:
                self.console.setPlainText("\n".join(lines))
                bar = self.console.verticalScrollBar()
                bar.setValue(bar.maximum())
                self._console_tail = tail

    # ---------- Helpers ----------
    def _toggle_pause(self):
        self.session.set_paused(not self.session.paused)
        self.sb.showMessage("Paused" if self.session.paused else "Resumed", 2000)

    def _open_config_dialog(self):
        path, _ = QtWidgets.QFileDialog.getOpenFileName(self, "Open config", "", "JSON Files (*.json)")
        if not path:
            return
        self.load_config(path)

    def load_config(self, path: str):
        try:
            self.session.load_config_file(path)
        except (OSError, ValueError) as e:
            self._notify(Notification.error(f"Failed to load config: {e}"))
            return
        self._load_controls()
        self._rebuild_plots()
        self.populate_ports()
        self._sync_controls()

    def _save_config_dialog(self):
        path, _ = QtWidgets.QFileDialog.getSaveFileName(self, "Save config", "", "JSON Files (*.json)")
        if not path:
            return
        try:
            self.session.save_config_file(path)
        except OSError as e:
            self._notify(Notification.error(f"Failed to save config: {e}"))
            return
        self.sb.showMessage(f"Saved {path}", 2000)

    def closeEvent(self, event):
        self.timer.stop()
        if self.session.is_connected():
            self.session.disconnect()
        return super().closeEvent(event)
