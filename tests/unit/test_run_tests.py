from unittest.mock import patch

import allure
import pytest

import run_tests

pytestmark = pytest.mark.unit


@allure.epic("测试工具单元测试")
@allure.feature("测试运行脚本")
class TestRunTests:

    def run(self, *argv):
        with patch('run_tests.pytest.main', return_value=0) as mock_main:
            assert run_tests.main(list(argv)) == 0
        return mock_main.call_args[0][0]

    @allure.title("默认运行全部测试")
    def test_default_runs_everything(self):
        args = self.run()
        assert 'tests/' in args
        assert '-m' not in args

    @allure.title("选择多个层级时合并目录和 marker")
    def test_selected_suites(self):
        args = self.run('unit', 'e2e')
        assert args[args.index('-m') + 1] == 'unit or e2e'
        assert 'tests/unit/' in args and 'tests/e2e/' in args
        assert 'tests/integration/' not in args

    def test_keyword_and_failure_options(self):
        args = self.run('integration', '-k', 'upload', '--failed-first', '-x')
        assert args[args.index('-k') + 1] == 'upload'
        assert '--failed-first' in args
        assert '-x' in args

    def test_allure_results_dir(self, tmp_path, monkeypatch):
        results = tmp_path / 'allure'
        results.mkdir()
        (results / 'old.json').write_text('{}')
        monkeypatch.setattr(run_tests, 'RESULTS_DIR', str(results))

        args = self.run('--allure')

        assert f'--alluredir={results}' in args
        assert not results.exists()

    def test_unknown_suite_rejected(self):
        with patch('run_tests.pytest.main') as mock_main:
            with pytest.raises(SystemExit) as exc_info:
                run_tests.main(['smoke'])
        assert exc_info.value.code == 2
        mock_main.assert_not_called()
