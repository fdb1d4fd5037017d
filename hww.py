#! /usr/bin/env python3

# Hardware wallet communication script

if __name__ == '__main__':
    from hwwcore._cli import main
    main()
else:
    raise ImportError('hww is not importable. Import hwwcore instead')
