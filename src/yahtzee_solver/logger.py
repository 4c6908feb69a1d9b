import logging

LOG_FORMAT = '%(asctime)s %(levelname)-8s %(name)-24s %(message)s'
DATE_FORMAT = '%Y-%m-%d,%H:%M:%S'


def configure_logging(verbose=False):
    logging.basicConfig(
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        level=logging.DEBUG if verbose else logging.INFO)


class SolverLogger:
    def __init__(self, name):
        self.logger = logging.getLogger(name)

    def get_logger(self):
        return self.logger
