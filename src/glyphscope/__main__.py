from glyphscope.cli import main

main()
