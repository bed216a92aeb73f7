import sys
import logging
import argparse
from pydantic import ValidationError

from .config import ZsignConfig
from .errors import ZsignError
from .options import SignOptions
from .zsign import Zsign, parse_version


def setup_logging(debug=False, log_file=None):
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def build_parser():
    parser = argparse.ArgumentParser(prog='pyzsign', description='Sign iOS apps with the bundled zsign binary')
    parser.add_argument('--debug', action='store_true', help='Log the zsign binary and command line')
    parser.add_argument('--bin-dir', help='Directory with zsign_<os>_<arch> binaries')
    parser.add_argument('--timeout', type=float, help='Kill zsign after this many seconds')
    parser.add_argument('--log-file', help='Also write logs to this file')

    subparsers = parser.add_subparsers(dest='command', required=True)

    version = subparsers.add_parser('version', help='Show zsign version')
    version.add_argument('--raw', action='store_true', help='Print zsign output unparsed')

    subparsers.add_parser('help', help='Show zsign help')

    sign = subparsers.add_parser('sign', help='Sign an IPA or .app folder')
    sign.add_argument('input', help='Path to input IPA or .app folder')
    sign.add_argument('-k', '--pkey', help='Private key or P12 certificate')
    sign.add_argument('-m', '--prov', help='Path to provisioning profile')
    sign.add_argument('-c', '--cert', help='Certificate file (PEM or DER)')
    sign.add_argument('-p', '--password', help='Private key or P12 password')
    sign.add_argument('-o', '--output', help='Output IPA path')
    sign.add_argument('-b', '--bundle-id', help='New bundle ID')
    sign.add_argument('-n', '--bundle-name', help='New bundle name')
    sign.add_argument('-r', '--bundle-version', help='New bundle version')
    sign.add_argument('-e', '--entitlements', help='Entitlements plist')
    sign.add_argument('-z', '--zip-level', type=int, choices=range(10), metavar='0-9',
                      help='Compression level of the output IPA')
    sign.add_argument('-l', '--dylib', help='Path to dylib to inject')
    sign.add_argument('-w', '--weak', action='store_true', help='Inject dylib as weak')
    sign.add_argument('-f', '--force', action='store_true', help='Sign folder without cache')
    sign.add_argument('-i', '--install', action='store_true', help='Install IPA after signing')
    sign.add_argument('-q', '--quiet', action='store_true', help='Quiet zsign output')
    sign.add_argument('--zsign-debug', action='store_true', help='Pass --debug to zsign')
    return parser


def options_from_args(args) -> SignOptions:
    return SignOptions(
        pkey=args.pkey,
        prov=args.prov,
        cert=args.cert,
        debug=args.zsign_debug,
        force=args.force,
        output=args.output,
        password=args.password,
        bundle_id=args.bundle_id,
        bundle_name=args.bundle_name,
        bundle_version=args.bundle_version,
        entitlements=args.entitlements,
        zip_level=args.zip_level,
        dylib=args.dylib,
        weak=args.weak,
        install=args.install,
        quiet=args.quiet
    )


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    # flags left out on the command line fall back to ZSIGN_* environment variables
    overrides = {'debug': args.debug or None, 'bin_dir': args.bin_dir, 'timeout': args.timeout}
    try:
        config = ZsignConfig(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as e:
        print(f"Error: invalid settings: {str(e)}", file=sys.stderr)
        return 2

    setup_logging(config.debug, args.log_file)
    try:
        zsign = Zsign(config)
    except ZsignError as e:
        print(f"Error: {str(e)}", file=sys.stderr)
        return 2

    if args.command == 'version':
        future = zsign.get_version()
    elif args.command == 'help':
        future = zsign.show_help()
    else:
        future = zsign.sign(args.input, options_from_args(args))

    result = future.result()
    if not result.ok:
        print(f"Error: {str(result.error)}", file=sys.stderr)
        # zsign reports what went wrong on its own output streams
        for stream in ('stdout', 'stderr'):
            text = getattr(result.error, stream, None)
            if text:
                print(text.rstrip(), file=sys.stderr)
        return 1

    if args.command == 'version' and not args.raw:
        try:
            print(parse_version(result.output))
        except ValueError:
            print(result.output.rstrip())
    else:
        print(result.output.rstrip())
    return 0


if __name__ == '__main__':
    sys.exit(main())
