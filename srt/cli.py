"""Console entry point of the srt command."""

from srt.srt import cli


def main():
    cli()


if __name__ == '__main__':
    main()
