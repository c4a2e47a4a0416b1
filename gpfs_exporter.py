# GPFS Prometheus exporter
#
# Answers each scrape of /metrics by running the enabled GPFS collectors in
# parallel and returning their output.  Run as root, or as a user allowed to
# run the /usr/lpp/mmfs/bin commands through sudo.
#
import logging.handlers
import platform
import socket
import sys
from wsgiref.simple_server import WSGIRequestHandler, make_server

import prometheus_client
import yaml
from prometheus_client.exposition import ThreadingWSGIServer

# local imports
import gpfs_collectors
from config import build_parser, parse_config
from runner import CommandRunner

VERSION = "1.0.0"

# set the root log
log = logging.getLogger()

LANDING_PAGE = b"""<html>
<head><title>GPFS Exporter</title></head>
<body>
<h1>GPFS Metrics Exporter</h1>
<p><a href='/metrics'>Metrics</a></p>
</body>
</html>
"""


def make_app(gpfs_collector, disable_exporter_metrics=False):
    """ WSGI app: /metrics runs a scrape against a fresh registry, anything else gets the landing page """
    def app(environ, start_response):
        if environ.get("PATH_INFO", "/") != "/metrics":
            start_response("200 OK", [("Content-Type", "text/html; charset=utf-8")])
            return [LANDING_PAGE]
        registry = prometheus_client.CollectorRegistry()
        registry.register(gpfs_collector)
        if not disable_exporter_metrics:
            # process_* and python_* metrics of this exporter
            registry.register(prometheus_client.REGISTRY)
        return prometheus_client.make_wsgi_app(registry)(environ, start_response)
    return app


def parse_listen_address(address):
    """ ':9303', '127.0.0.1:9303' or '[::1]:9303' -> (host, port) """
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid listen address '{address}'")
    host = host.strip("[]")
    return host, int(port)


class QuietHandler(WSGIRequestHandler):
    def log_message(self, format, *args):
        log.debug(f"{self.address_string()} {format % args}")


class DualStackServer(ThreadingWSGIServer):
    """ IPv6 socket that also accepts IPv4 connections as mapped addresses """
    address_family = socket.AF_INET6

    def server_bind(self):
        self.socket.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 0)
        super().server_bind()


def make_http_server(host, port, app):
    """ an empty host listens on every address, IPv6 and IPv4 """
    if not host:
        try:
            return make_server("::", port, app, server_class=DualStackServer, handler_class=QuietHandler)
        except OSError as exc:
            log.warning(f"Unable to listen on [::]:{port}, listening on IPv4 only: {exc}")
            host = "0.0.0.0"
    family = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)[0][0]

    class Server(ThreadingWSGIServer):
        address_family = family

    return make_server(host, port, app, server_class=Server, handler_class=QuietHandler)


def configure_logging(logger, verbosity, disable_syslog=False):
    loglevel = logging.INFO     # default logging level

    # default message formats
    console_format = "%(message)s"
    syslog_format = "%(process)s:%(filename)s:%(lineno)s:%(funcName)s():%(levelname)s:%(message)s"

    if verbosity == 1:
        console_format = "%(levelname)s:%(message)s"
    elif verbosity >= 2:
        loglevel = logging.DEBUG
        console_format = "%(filename)s:%(lineno)s:%(funcName)s():%(levelname)s:%(message)s"

    # create handler to log to console
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(console_format))
    logger.addHandler(console_handler)

    if not disable_syslog:
        # create handler to log to syslog
        logger.info(f"setting syslog on {platform.platform()}")
        if platform.platform()[:5] == "macOS":
            syslogaddr = "/var/run/syslog"
        else:
            syslogaddr = "/dev/log"
        syslog_handler = logging.handlers.SysLogHandler(syslogaddr)
        syslog_handler.setFormatter(logging.Formatter(syslog_format))
        logger.addHandler(syslog_handler)

    # set default loglevel
    logger.setLevel(loglevel)

    # local modules
    for module in ("batch", "collector", "register", "records", "runner", "config", "gpfs_collectors"):
        logging.getLogger(module).setLevel(loglevel)


def load(parser):
    """ parse the command line and config file; exits on --version and on config errors """
    args, _ = parser.parse_known_args()
    if args.version:
        print(f"{sys.argv[0]} version {VERSION}")
        sys.exit(0)

    configure_logging(log, args.verbosity, disable_syslog=args.no_syslog)

    try:
        return parse_config(parser)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        log.critical(f"Error loading config file '{args.configfile}': {exc}")
        sys.exit(1)


def main():
    registry = gpfs_collectors.default_registry()
    parser = build_parser("Prometheus exporter for GPFS", registry)
    parser.add_argument("--web.listen-address", dest="web.listen-address", default=":9303",
                        help="Address on which to expose metrics and web interface.")
    parser.add_argument("--web.disable-exporter-metrics", dest="web.disable-exporter-metrics", default=False,
                        action="store_true", help="Exclude metrics about the exporter itself (process_*, python_*).")
    config = load(parser)

    runner = CommandRunner(sudo=config["exporter.sudo-command"])
    gpfs_collector = registry.build(config, runner)
    log.info(f"Enabled collectors: {', '.join(sorted(gpfs_collector.collectors))}")

    app = make_app(gpfs_collector, config["web.disable-exporter-metrics"])

    address = config["web.listen-address"]
    try:
        host, port = parse_listen_address(address)
        httpd = make_http_server(host, port, app)
    except (OSError, ValueError) as exc:
        log.critical(f"Unable to start http server on {address}: {exc}")
        sys.exit(1)

    log.info(f"starting http server on {address}")
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        log.info("shutting down")
    finally:
        httpd.server_close()


if __name__ == '__main__':
    main()
