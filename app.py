# -*- coding: utf-8 -*-
from starchain.api import main

if __name__ == "__main__":
    main()
