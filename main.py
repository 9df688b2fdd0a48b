"""
Командная строка для компрессора Хаффмана.
"""

import argparse
import sys
from huffer import Huffer


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='hufftree',
        description='Huffman tree-header compressor',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py compress file1.txt file2.txt
  python main.py compress file.txt -o file.hf
  python main.py decompress file1.txt.hf -o restored.txt
  python main.py info file1.txt.hf
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Command')

    compress_parser = subparsers.add_parser('compress', help='Compress files')
    compress_parser.add_argument('files', nargs='+', help='Files to compress')
    compress_parser.add_argument('-o', '--output', help='Output path (single file only)')
    compress_parser.add_argument('-v', '--verbose', action='count', default=0,
                                 help='Debug output (-v summary, -vvvv code table)')

    decompress_parser = subparsers.add_parser('decompress', help='Decompress files')
    decompress_parser.add_argument('files', nargs='+', help='Files to decompress')
    decompress_parser.add_argument('-o', '--output', help='Output path (single file only)')
    decompress_parser.add_argument('-v', '--verbose', action='count', default=0,
                                   help='Debug output (-v summary, -vvvv code table)')

    info_parser = subparsers.add_parser('info', help='Show the code table of a compressed file')
    info_parser.add_argument('file', help='Compressed file')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    if getattr(args, 'output', None) and len(args.files) > 1:
        parser.error('--output can only be used with a single file')

    huffer = Huffer(debug=getattr(args, 'verbose', 0))

    try:
        if args.command == 'compress':
            done = huffer.compress_files(args.files, args.output)
            if done != len(args.files):
                sys.exit(1)

        elif args.command == 'decompress':
            done = huffer.decompress_files(args.files, args.output)
            if done != len(args.files):
                sys.exit(1)

        elif args.command == 'info':
            huffer.info(args.file)

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
