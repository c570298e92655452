from gen_inds_release.cli import main

raise SystemExit(main())
