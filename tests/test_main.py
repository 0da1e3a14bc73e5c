from pathlib import Path

import pandas as pd
import pytest

from aranet_archive import main as main_module
from aranet_archive.aranet4.errors import TransportError
from aranet_archive.config import ENV_KEYS

from .utils import AGO, LOGS, FakeAranet


class _ConnectedAranet(FakeAranet):
    device_name = "Aranet4 1BA27"
    connected = False
    fail_connect = False

    def connect(self) -> None:
        if self.fail_connect:
            raise TransportError("connect failed after 3 attempts")
        self.connected = True

    def disconnect(self) -> None:
        self.connected = False


@pytest.fixture
def run_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, frozen_time: list[float]) -> Path:
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr("aranet_archive.config.load_dotenv", lambda: False)
    monkeypatch.setattr("signal.signal", lambda *_args: None)
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path))
    return tmp_path


def test_main_writes_archive(run_env: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    device = _ConnectedAranet(LOGS, ago=AGO)
    monkeypatch.setattr(main_module, "make_transport", lambda _settings: device)

    main_module.main()

    written = sorted(run_env.glob("*_Aranet4_1BA27_history.csv"))
    assert len(written) == 1
    assert capsys.readouterr().out.strip() == str(written[0])
    assert len(pd.read_csv(written[0])) == 6
    assert not device.connected


def test_main_exits_on_transport_error(run_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    device = _ConnectedAranet(LOGS, ago=AGO)
    device.fail_connect = True
    monkeypatch.setattr(main_module, "make_transport", lambda _settings: device)

    with pytest.raises(SystemExit) as exc:
        main_module.main()

    assert exc.value.code == 1
    assert list(run_env.iterdir()) == []


def test_main_exits_when_cancelled(run_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    device = _ConnectedAranet(LOGS, ago=AGO)
    monkeypatch.setattr(main_module, "make_transport", lambda _settings: device)
    # Interrupt arrives before the first page is requested
    monkeypatch.setattr(main_module, "_install_cancel_handler", lambda cancel: cancel.set())

    with pytest.raises(SystemExit) as exc:
        main_module.main()

    assert exc.value.code == 130
    assert device.writes == []
