import logging

from colorama import Fore, Style


class CustomFormatter(logging.Formatter):
    format = f"{Style.BRIGHT}%(asctime)s [%(levelname)s]{Style.RESET_ALL} - %(name)s - %(message)s"

    FORMATS = {
        logging.DEBUG: Style.DIM + format + Style.RESET_ALL,
        logging.INFO: Fore.WHITE + format + Style.RESET_ALL,
        logging.WARNING: Fore.YELLOW + format + Style.RESET_ALL,
        logging.ERROR: Fore.RED + format + Style.RESET_ALL,
        logging.CRITICAL: Fore.RED + Style.BRIGHT + format + Style.RESET_ALL,
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno)
        formatter = logging.Formatter(log_fmt)
        return formatter.format(record)


def setup_logger(level=logging.INFO):
    ColorfulHandler = logging.StreamHandler()
    ColorfulHandler.setFormatter(CustomFormatter())

    logging.addLevelName(logging.ERROR, "ERRR")
    logging.addLevelName(logging.WARNING, "WARN")

    logging.basicConfig(level=level, handlers=[ColorfulHandler])


def set_verbosity(verbose: bool) -> None:
    """Switch the root logger between INFO and DEBUG after setup."""
    logging.getLogger().setLevel(logging.DEBUG if verbose else logging.INFO)
