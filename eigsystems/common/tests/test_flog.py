import logging

from eigsystems.common.flog import Logger, Colors, get_global_logger

class TestLogger:

    def test_levels_and_indentation(self, capsys):
        logger = Logger(name="eigsystems.test.console", lvl='info')
        logger.debug("hidden")
        logger.info("solving", lvl=2)
        out = capsys.readouterr().out
        assert "hidden" not in out
        assert "[INFO] \t\t->solving" in out

    def test_file_handler_strips_colours(self, tmp_path):
        path    = tmp_path / "logs" / "run.log"
        logger  = Logger(name="eigsystems.test.file", logfile=str(path), lvl=logging.DEBUG)
        logger.say(Logger.colorize("converged", "green"), log='debug')
        for handler in logger.logger.handlers:
            handler.flush()
        text = path.read_text()
        assert "converged" in text
        assert Colors.code("green") not in text

    def test_global_logger_is_shared(self):
        assert get_global_logger() is get_global_logger()
